"""
Login collaborator for the sales-rep UI.

Only a fixed-credential check, kept behind an interface so a real identity
provider can replace it. Not a security boundary: the pricing engine never
calls it.
"""
import os


class Authenticator:
    def authenticate(self, username: str, password: str) -> bool:
        raise NotImplementedError


class StaticCredentialAuthenticator(Authenticator):
    """Matches one username/password pair (env QUOTEDESK_USER / QUOTEDESK_PASS)."""

    def __init__(self, username: str = None, password: str = None):
        self.username = username if username is not None else os.environ.get("QUOTEDESK_USER", "admin")
        self.password = password if password is not None else os.environ.get("QUOTEDESK_PASS", "changeme")

    def authenticate(self, username: str, password: str) -> bool:
        return bool(username) and username == self.username and password == self.password
