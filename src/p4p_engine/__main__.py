"""Entry point for running the CLI with ``python -m p4p_engine``."""

from p4p_engine.cli import main

if __name__ == "__main__":
    main()
