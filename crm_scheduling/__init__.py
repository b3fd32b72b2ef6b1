"""CRM contact, lead and appointment tools behind a session protocol gateway."""

__version__ = "1.0.0"
