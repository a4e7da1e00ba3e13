"""safegate: confirm destructive shell commands and critical file writes before they run."""

__version__ = "0.1.0"
