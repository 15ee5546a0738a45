from agentflow.transport.http import HTTPResponse, HTTPTransport

__all__ = ["HTTPResponse", "HTTPTransport"]
