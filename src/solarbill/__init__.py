"""solarbill: deterministic invoice pricing for solar asset-management contracts."""

__version__ = "0.1.0"
