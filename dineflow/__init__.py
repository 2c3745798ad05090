"""Multi-tenant QR ordering service."""
