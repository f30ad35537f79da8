__all__ = [
    "AuthSettings",
    "DatabaseSecrets",
    "DatabaseSettings",
    "EduFamWebSettings",
    "GradingSettings",
    "LoggingSettings",
    "Secrets",
    "Settings",
    "StorageSettings",
    "WebSettings",
]


from .grading import GradingSettings
from .logging import LoggingSettings
from .secrets import DatabaseSecrets, Secrets
from .settings import Settings
from .storage import DatabaseSettings, StorageSettings
from .web import AuthSettings, EduFamWebSettings, WebSettings
