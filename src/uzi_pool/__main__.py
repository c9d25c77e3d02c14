"""Allow running the pool with ``python -m uzi_pool``."""

from uzi_pool.cli import main

if __name__ == "__main__":
    main()
