"""Device side of the judging channel."""

from judging.client.channel import ClientChannel
from judging.client.router import ClientContext, build_client_router
from judging.client.socket_client import JudgingClient
from judging.client.store import ClientState, ClientStateStore

__all__ = [
    'ClientChannel',
    'ClientContext',
    'ClientState',
    'ClientStateStore',
    'JudgingClient',
    'build_client_router',
]
