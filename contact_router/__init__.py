"""contact-router: weighted upstream routing for WhatsApp contact numbers."""

__version__ = "1.0.0"
