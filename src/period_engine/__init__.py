"""Period processing and tax computation engine for center-based payroll."""

__version__ = "0.1.0"
