"""Ask Arden - HR and company-knowledge chat assistant."""

__version__ = "0.1.0"
