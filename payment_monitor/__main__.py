import sys

from payment_monitor.app import run
from payment_monitor.config import ConfigError


def main() -> int:
    try:
        run()
    except ConfigError as e:
        print(f"configuration error: {e}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
