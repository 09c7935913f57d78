"""Allow ``python -m collectortest``; the load-test supervisor relaunches through this."""
from collectortest.cli.main import main

if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
