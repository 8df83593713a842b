import os
from dotenv import load_dotenv

load_dotenv()

SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_ANON_KEY")

TICKETMASTER_KEY = os.getenv("TICKETMASTER_KEY")
TICKETMASTER_BASE_URL = os.getenv("TICKETMASTER_BASE_URL", "https://app.ticketmaster.com/discovery/v2")
TICKETMASTER_COUNTRY_CODE = os.getenv("TICKETMASTER_COUNTRY_CODE", "GB")
TICKETMASTER_PAGE_SIZE = int(os.getenv("TICKETMASTER_PAGE_SIZE", "12"))
TICKETMASTER_WINDOW_DAYS = int(os.getenv("TICKETMASTER_WINDOW_DAYS", "30"))
TICKETMASTER_CACHE_TTL_S = float(os.getenv("TICKETMASTER_CACHE_TTL_S", str(20 * 60)))

FEED_PAGE_SIZE = int(os.getenv("FEED_PAGE_SIZE", "12"))
PLACEHOLDER_IMAGE_URL = os.getenv("PLACEHOLDER_IMAGE_URL", "/images/placeholder-event.jpg")


def require_env(*names: str) -> None:
    """Fail fast if any of the named env vars is missing."""
    missing = [n for n in names if not os.getenv(n)]
    if missing:
        raise EnvironmentError(
            f"Missing required environment variables: {', '.join(missing)}. "
            "Copy .env.example to .env and fill in your Supabase / Ticketmaster credentials."
        )
