"""
Vault portal - HTTP, WebSocket and SSE surface for the vault gates.
"""
