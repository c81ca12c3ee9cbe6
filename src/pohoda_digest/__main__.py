"""Allow ``python -m pohoda_digest``."""

from pohoda_digest.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
