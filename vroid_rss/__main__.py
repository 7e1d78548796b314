"""Allow running the application with ``python -m vroid_rss``."""

from vroid_rss.main import main

if __name__ == "__main__":
    main()
