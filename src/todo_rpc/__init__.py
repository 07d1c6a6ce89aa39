"""
Todo RPC backend package.

The ASGI application lives in ``todo_rpc.main`` (``todo_rpc.main:app``);
``todo_rpc.main.create_app`` builds independent instances for tests.
"""

__version__ = "0.1.0"
