"""gravekeeper - non-destructive disk cleanup with an audited graveyard."""

__version__ = "0.1.0"
