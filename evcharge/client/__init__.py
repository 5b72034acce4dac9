from .context import RequestContext, ANONYMOUS
from .api_client import ConsoleClient

__all__ = ["RequestContext", "ANONYMOUS", "ConsoleClient"]
