"""
Vault - self-hosted file storage with an assistant.

Gates:
- StorageGate: tenant-isolated file tree, usage statistics, backups
- AuditGate: security event history
- DocumentGate: text extraction for the summarize tool
- LLMGate: chat-completions client
- ToolGate: assistant tools and the bounded agent loop
- ChatGate: connection-scoped chat sessions
- NotificationGate: outbound email (mocked)
"""

__version__ = "0.1.0"
