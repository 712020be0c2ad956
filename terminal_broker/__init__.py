"""
Terminal Broker for sandboxed AI CLI sessions.

This service manages the lifecycle of per-user terminal containers:
- Claude Code, Gemini CLI and OpenAI Codex sessions, one container each
- Unique host port per session bound to the container's ttyd port
- Persistent workspace directory per session, bind-mounted at /workspace
- Sandboxed file browsing inside a session's workspace
- Credentials from the settings API, Vault (OpenBao/HashiCorp) or environment
- Registry rehydrated from running containers on restart
"""

__version__ = "1.0.0"
