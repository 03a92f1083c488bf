"""n8n platform access: REST client and node-type catalog."""

from weaver.platform.client import N8nClient, N8nClientConfig, PlatformClient

__all__ = ["N8nClient", "N8nClientConfig", "PlatformClient"]
