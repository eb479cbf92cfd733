"""Embed snippet for the deployed chat widget."""

import json
from typing import Optional

from schemas.profile import DEFAULT_BRAND_COLOR

DEFAULT_WIDGET_SCRIPT_URL = "https://cdn.brandagent.chat/widget/v1/bundle.js"

SNIPPET_TEMPLATE = """<script>
  window.brandAgentConfig = {config};
</script>
<script src="{script_url}" async></script>"""


def normalize_site_url(url: Optional[str]) -> Optional[str]:
    """Add a missing https:// scheme; empty input gives None."""
    if not url or not url.strip():
        return None
    url = url.strip()
    if not url.lower().startswith(("http://", "https://")):
        url = f"https://{url}"
    return url


def build_embed_snippet(
    token: str,
    brand_color: Optional[str] = None,
    theme: str = "light",
    script_url: str = DEFAULT_WIDGET_SCRIPT_URL
) -> str:
    """
    Build the html the operator pastes into their site.

    Args:
        token: Access token the widget uses to load the profile
        brand_color: Primary widget color
        theme: "light" or "dark"
        script_url: Widget loader script

    Returns:
        Two script tags: the config and the loader
    """
    config = json.dumps({
        "token": token,
        "theme": theme,
        "primaryColor": brand_color or DEFAULT_BRAND_COLOR,
    })
    return SNIPPET_TEMPLATE.format(config=config, script_url=script_url)
