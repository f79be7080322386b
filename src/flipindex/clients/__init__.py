"""Network clients."""

from flipindex.clients.rpc import RPC, RPCError

__all__ = ["RPC", "RPCError"]
