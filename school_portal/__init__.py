"""School portal API: accounts, authentication and student provisioning."""

__version__ = "1.0.0"
