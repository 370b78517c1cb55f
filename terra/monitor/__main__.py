"""Monitor service entrypoint.

Usage: python -m terra.monitor
"""
from terra.monitor.service import main

if __name__ == "__main__":
    main()
