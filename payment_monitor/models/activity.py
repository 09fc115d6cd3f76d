from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class LogEntry:
    timestamp: str  # ISO 8601
    level: str  # "info" | "error"
    message: str

    def to_dict(self) -> dict:
        return asdict(self)
