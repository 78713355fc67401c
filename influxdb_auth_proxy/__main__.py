"""Entry point for running the proxy with ``python -m influxdb_auth_proxy``."""

from influxdb_auth_proxy.cli import main

if __name__ == "__main__":
    main()
