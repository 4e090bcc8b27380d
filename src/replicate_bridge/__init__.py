"""Replicate Bridge - asynchronous Replicate predictions for chat image generation."""

__version__ = "0.1.0"

# Descriptor reported by ``GET /info`` so the host application can list the plugin.
PLUGIN_INFO = {
    "id": "replicate",
    "name": "Replicate Integration",
    "description": "Integrates Replicate as a first-class image generation provider",
}
