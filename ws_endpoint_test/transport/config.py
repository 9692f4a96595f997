"""Configuration for the aiohttp WebSocket transport."""

from pydantic import BaseModel


class TransportConfig(BaseModel):
    """Configuration for the aiohttp WebSocket transport."""

    # Honor HTTP_PROXY/HTTPS_PROXY/NO_PROXY from the environment
    trust_env: bool = True
    max_msg_size: int = 4 * 1024 * 1024
    # Seconds to wait for the server's reply to a close frame
    close_timeout: float = 1.0
