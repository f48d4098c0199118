# modules/openai_client.py

import logging
from typing import Optional

from openai import OpenAI

from config import PortalSettings

logger = logging.getLogger(__name__)


def make_openai_client(settings: PortalSettings) -> Optional[OpenAI]:
    """
    Build the OpenAI client from settings, or None when no API key is configured.

    Without a key the FAQ assistant still works but always answers with its
    fallback message.
    """
    if not settings.openai_api_key:
        logger.error(
            "OpenAI API key not found. Set st.secrets['api_keys']['openai_api_key'], "
            "st.secrets['openai_api_key'], st.secrets['OPENAI_API_KEY'] or the "
            "OPENAI_API_KEY environment variable. The FAQ assistant will not be available."
        )
        return None
    # one attempt per question, no automatic retries
    return OpenAI(api_key=settings.openai_api_key, max_retries=0)
