from supabase import create_client, Client
from guardian.config import settings


def get_supabase_client() -> Client:
    """
    Create and return a Supabase client instance.
    Uses the service role key; rows are scoped by user_id explicitly.
    """
    return create_client(
        settings.SUPABASE_URL,
        settings.SUPABASE_SERVICE_KEY
    )
