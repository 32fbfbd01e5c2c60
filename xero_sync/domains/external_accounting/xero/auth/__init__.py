from .secret_box import SecretBox
from .service import XeroCredentialManager
from .store import CredentialStore

__all__ = ["SecretBox", "CredentialStore", "XeroCredentialManager"]
