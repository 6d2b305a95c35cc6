SETUP = """
# Translation Management i18n Integration

## Setup

1. Generate an API key in the dashboard (Settings > API keys).
2. Create a client once at application start:

```python
from localedesk.client import TranslationClient

client = TranslationClient(
    api_key="trn_...",
    project_id="your-project-id",
    base_url="https://your-translation-app.com/api/translations",
)
```
"""

USAGE = """
## Usage

```python
t = client.get_translator(locale="fr", namespace="default")
t("welcome")
t("hello", {"name": "User"})  # "Bonjour, User!" for "Bonjour, {{name}}!"
```

Missing keys fall back to the key itself. Responses are cached per
locale and namespace until `client.clear_cache()` is called.
"""

HTTP = """
## Raw HTTP

```
GET /api/translations?locale=fr&namespace=default
Authorization: Bearer <api key>
Project-ID: <project id>
```

or `GET /api/translations/fr/default` with the same headers. Both return a
flat JSON object of `key -> text` for the requested locale.
"""


def documentation() -> dict:
    return {
        "title": "Translation Management i18n Integration",
        "description": "How to use the Translation Management App like i18next in your applications",
        "instructions": {
            "setup": SETUP,
            "usage": USAGE,
            "http": HTTP,
        },
    }
