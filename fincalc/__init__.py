"""Financial planning calculations: tax, retirement projection and serviceability."""

__version__ = "0.1.0"
