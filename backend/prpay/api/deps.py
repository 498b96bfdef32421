import logging
from typing import Callable, Optional

from prpay.connectors.locus import LocusPaymentBackend
from prpay.connectors.metorial import MetorialOAuthBroker, PollPolicy
from prpay.connectors.table_store import TableStore
from prpay.core.config import CredentialGroup, settings
from prpay.core.exceptions import ConfigurationError
from prpay.services.ai.completion_service import OpenAICompletionBackend
from prpay.services.tools.agent import CompletionBackend

logger = logging.getLogger("prpay.deps")

# Process-wide clients, created lazily and closed by the shutdown manager
_table_store: Optional[TableStore] = None
_oauth_broker: Optional[MetorialOAuthBroker] = None


def require_credentials(*groups: CredentialGroup) -> Callable[[], None]:
    """
    Dependency factory that fails the request before any work is done
    when a credential group is not configured.

    Usage:
        @router.post("/chat", dependencies=[Depends(require_credentials("OPENAI_API_KEY"))])
    """
    def check() -> None:
        missing = settings.missing_credentials(*groups)
        if missing:
            logger.error(f"Missing configuration: {', '.join(missing)}")
            raise ConfigurationError.missing_credentials(missing)

    return check


def require_table_store_credentials() -> None:
    missing = settings.missing_credentials(*settings.table_store_credentials())
    if missing:
        logger.error(f"Table store is not configured: {', '.join(missing)}")
        raise ConfigurationError.missing_credentials(missing)


def _build_table_store() -> TableStore:
    if settings.TABLE_STORE_BACKEND == "sql":
        from prpay.connectors.sql_store import SqlTableStore
        return SqlTableStore.from_url(settings.DATABASE_URL, echo=settings.SQLALCHEMY_ECHO)

    from prpay.connectors.supabase_store import SupabaseTableStore
    return SupabaseTableStore(
        settings.SUPABASE_URL,
        settings.SUPABASE_SERVICE_ROLE_KEY or settings.SUPABASE_ANON_KEY,
        schema_rpc=settings.SUPABASE_SCHEMA_RPC,
        timeout=settings.SUPABASE_REQUEST_TIMEOUT,
    )


def get_table_store() -> TableStore:
    global _table_store
    require_table_store_credentials()
    if _table_store is None:
        _table_store = _build_table_store()
        logger.info(f"Table store initialized ({settings.TABLE_STORE_BACKEND})")
    return _table_store


def get_completion_backend() -> CompletionBackend:
    return OpenAICompletionBackend()


def get_payment_backend() -> LocusPaymentBackend:
    return LocusPaymentBackend(
        settings.LOCUS_API_KEY,
        OpenAICompletionBackend(),
        mcp_url=settings.LOCUS_MCP_URL,
        max_iterations=settings.AGENT_MAX_ITERATIONS,
    )


def get_oauth_broker() -> MetorialOAuthBroker:
    global _oauth_broker
    if _oauth_broker is None:
        _oauth_broker = MetorialOAuthBroker(
            settings.METORIAL_API_KEY,
            base_url=settings.METORIAL_BASE_URL,
            server_deployment_id=settings.GITHUB_SERVER_DEPLOYMENT_ID,
        )
    return _oauth_broker


def get_poll_policy() -> PollPolicy:
    return PollPolicy(
        max_attempts=settings.OAUTH_POLL_MAX_ATTEMPTS,
        interval_seconds=settings.OAUTH_POLL_INTERVAL_SECONDS,
    )


async def close_clients() -> None:
    """Close the shared table store and OAuth client; registered as a shutdown callback."""
    global _table_store, _oauth_broker
    if _table_store is not None:
        await _table_store.aclose()
        _table_store = None
    if _oauth_broker is not None:
        await _oauth_broker.aclose()
        _oauth_broker = None
