"""
Application configuration.
Secrets may be loaded from Azure Key Vault (when KEY_VAULT_NAME is set) via
Managed Identity at startup; otherwise environment variables / .env file are
used directly, which is what local development and the test suite rely on.
"""
import os
import logging
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Key Vault → environment variable mapping
# Secret names in Key Vault use lowercase-dashes; env vars use UPPER_SNAKE.
# ---------------------------------------------------------------------------
_KV_TO_ENV: dict[str, str] = {
    "database-url":                 "DATABASE_URL",
    "vapi-api-key":                 "VAPI_API_KEY",
    "vapi-phone-number-id":         "VAPI_PHONE_NUMBER_ID",
    "twilio-account-sid":           "TWILIO_ACCOUNT_SID",
    "twilio-auth-token":            "TWILIO_AUTH_TOKEN",
    "twilio-phone-number":          "TWILIO_PHONE_NUMBER",
    "google-sheets-client-email":   "GOOGLE_SHEETS_CLIENT_EMAIL",
    "google-sheets-private-key":    "GOOGLE_SHEETS_PRIVATE_KEY",
    "google-sheets-spreadsheet-id": "GOOGLE_SHEETS_SPREADSHEET_ID",
}


def _load_from_key_vault(vault_name: str) -> int:
    """
    Copy known secrets from Azure Key Vault into os.environ.
    Returns the number of secrets loaded.
    """
    from azure.identity import DefaultAzureCredential
    from azure.keyvault.secrets import SecretClient
    from azure.core.exceptions import AzureError, ResourceNotFoundError

    client = SecretClient(
        vault_url=f"https://{vault_name}.vault.azure.net/",
        credential=DefaultAzureCredential(),
    )
    loaded = 0
    for kv_name, env_name in _KV_TO_ENV.items():
        try:
            secret = client.get_secret(kv_name)
        except ResourceNotFoundError:
            continue
        except AzureError as e:
            logger.warning("KV: could not load '%s': %s", kv_name, e)
            continue
        if secret.value:
            os.environ[env_name] = secret.value
            loaded += 1
    return loaded


_kv_name = os.environ.get("KEY_VAULT_NAME")
if _kv_name:
    _n = _load_from_key_vault(_kv_name)
    logger.info("Loaded %d secrets from Key Vault '%s'", _n, _kv_name)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"
    DATABASE_URL: str

    # Vapi voice provider
    VAPI_API_KEY: str = ""
    VAPI_BASE_URL: str = "https://api.vapi.ai"
    VAPI_ASSISTANT_ID: str = ""
    VAPI_PHONE_NUMBER_ID: str = ""

    # Twilio SMS
    TWILIO_ACCOUNT_SID: str = ""
    TWILIO_AUTH_TOKEN: str = ""
    TWILIO_PHONE_NUMBER: str = ""

    # Google Sheets mirror
    GOOGLE_SHEETS_CLIENT_EMAIL: str = ""
    GOOGLE_SHEETS_PRIVATE_KEY: str = ""
    GOOGLE_SHEETS_SPREADSHEET_ID: str = ""
    GOOGLE_SHEETS_RANGE: str = "Sheet1"
    GOOGLE_TOKEN_URI: str = "https://oauth2.googleapis.com/token"

    # Agent code → agent mobile (E.164)
    AGENT_PHONE_NUMBERS: dict[str, str] = {"MM23": "+19059043544"}
    DEFAULT_COUNTRY_CODE: str = "1"

    def twilio_configured(self) -> bool:
        return all([self.TWILIO_ACCOUNT_SID, self.TWILIO_AUTH_TOKEN, self.TWILIO_PHONE_NUMBER])

    def sheets_configured(self) -> bool:
        return all([
            self.GOOGLE_SHEETS_CLIENT_EMAIL,
            self.GOOGLE_SHEETS_PRIVATE_KEY,
            self.GOOGLE_SHEETS_SPREADSHEET_ID,
        ])


settings = Settings()
