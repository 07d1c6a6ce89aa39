"""HTTP routers for the login and RPC endpoints."""
