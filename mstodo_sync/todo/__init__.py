"""Microsoft To Do module (Graph API access)."""

from .auth import TokenManager
from .gateway import GraphGateway
from .tasks import RemoteTaskManager

__all__ = ['TokenManager', 'GraphGateway', 'RemoteTaskManager']
