"""forecast_core: oracle-settled prediction markets on a bonding curve."""

__version__ = "0.1.0"
