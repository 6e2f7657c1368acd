"""form2chat_server — FastAPI REST API for the form2chat SDK.

Exposes the ChatEngine as a stateless HTTP API: the chat turn protocol,
per-operation chat endpoints, session lookup and form definitions.
"""
