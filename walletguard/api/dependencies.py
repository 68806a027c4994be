"""Dependency injection for FastAPI."""

from typing import Annotated

from fastapi import Depends

from walletguard.blocklist.memory import MemoryBlocklistStore
from walletguard.blocklist.postgres import PostgresBlocklistStore
from walletguard.blocklist.redis import RedisBlocklistStore
from walletguard.config import Settings, get_settings
from walletguard.contacts.memory import MemoryContactStore
from walletguard.contacts.postgres import PostgresContactStore
from walletguard.contacts.redis import RedisContactStore
from walletguard.core.blocklist import BlocklistStore
from walletguard.core.contacts import TrustedContactStore
from walletguard.core.ledger import LedgerClient
from walletguard.core.reports import FraudReportStore
from walletguard.providers.chainabuse import AbuseRegistryClient
from walletguard.providers.evm import EVMLedgerClient
from walletguard.providers.jsonrpc import JSONRPCClient
from walletguard.providers.solana import SolanaLedgerClient
from walletguard.reports.memory import MemoryReportStore
from walletguard.reports.postgres import PostgresReportStore
from walletguard.reports.redis import RedisReportStore
from walletguard.services.chain_activity import ChainActivityAnalyzer
from walletguard.services.risk_aggregator import RiskAggregatorService
from walletguard.services.send_workflow import WorkflowRegistry


_blocklist_instance: BlocklistStore | None = None
_contact_instance: TrustedContactStore | None = None
_report_instance: FraudReportStore | None = None
_registry_instance: AbuseRegistryClient | None = None
_ledger_instances: dict[str, LedgerClient] | None = None
_workflow_registry: WorkflowRegistry | None = None


def get_blocklist_store(
    settings: Annotated[Settings, Depends(get_settings)]
) -> BlocklistStore:
    """Get or create blocklist store instance."""
    global _blocklist_instance

    if _blocklist_instance is None:
        if settings.blocklist_backend == "redis":
            _blocklist_instance = RedisBlocklistStore(redis_url=settings.redis_url)
        elif settings.blocklist_backend == "postgres":
            _blocklist_instance = PostgresBlocklistStore(dsn=settings.postgres_dsn)
        else:
            _blocklist_instance = MemoryBlocklistStore()

    return _blocklist_instance


def get_contact_store(
    settings: Annotated[Settings, Depends(get_settings)]
) -> TrustedContactStore:
    """Get or create trusted contact store instance."""
    global _contact_instance

    if _contact_instance is None:
        if settings.blocklist_backend == "redis":
            _contact_instance = RedisContactStore(redis_url=settings.redis_url)
        elif settings.blocklist_backend == "postgres":
            _contact_instance = PostgresContactStore(dsn=settings.postgres_dsn)
        else:
            _contact_instance = MemoryContactStore()

    return _contact_instance


def get_report_store(
    settings: Annotated[Settings, Depends(get_settings)]
) -> FraudReportStore:
    """Get or create community report store instance."""
    global _report_instance

    if _report_instance is None:
        if settings.blocklist_backend == "redis":
            _report_instance = RedisReportStore(redis_url=settings.redis_url)
        elif settings.blocklist_backend == "postgres":
            _report_instance = PostgresReportStore(dsn=settings.postgres_dsn)
        else:
            _report_instance = MemoryReportStore()

    return _report_instance


def get_registry_client(
    settings: Annotated[Settings, Depends(get_settings)]
) -> AbuseRegistryClient:
    """Get or create abuse registry client instance."""
    global _registry_instance

    if _registry_instance is None:
        _registry_instance = AbuseRegistryClient(
            endpoint=settings.registry_endpoint,
            credential=settings.registry_credential.get_secret_value(),
            chain_alias_map=settings.chain_alias_map,
            timeout=settings.registry_timeout,
            page_size=settings.registry_page_size,
        )

    return _registry_instance


def get_ledger_clients(
    settings: Annotated[Settings, Depends(get_settings)]
) -> dict[str, LedgerClient]:
    """Get or create ledger clients keyed by chain."""
    global _ledger_instances

    if _ledger_instances is None:
        _ledger_instances = {
            "solana": SolanaLedgerClient(
                JSONRPCClient(
                    settings.solana_rpc_endpoints,
                    timeout=settings.rpc_timeout,
                    label="SolanaRPC",
                )
            ),
            "ethereum": EVMLedgerClient(
                JSONRPCClient(
                    settings.evm_rpc_endpoints,
                    timeout=settings.rpc_timeout,
                    label="EVMRPC",
                ),
                chain="ethereum",
            ),
        }

    return _ledger_instances


def get_risk_aggregator(
    settings: Annotated[Settings, Depends(get_settings)],
    blocklist: Annotated[BlocklistStore, Depends(get_blocklist_store)],
    registry: Annotated[AbuseRegistryClient, Depends(get_registry_client)],
    ledgers: Annotated[dict[str, LedgerClient], Depends(get_ledger_clients)],
) -> RiskAggregatorService:
    """Get risk aggregator service instance."""
    analyzers = {
        chain: ChainActivityAnalyzer(ledger, signature_limit=settings.recent_signature_limit)
        for chain, ledger in ledgers.items()
    }
    return RiskAggregatorService(
        blocklist=blocklist,
        registry=registry,
        analyzers=analyzers,
        registry_timeout=settings.registry_timeout,
        analyzer_timeout=settings.analyzer_timeout,
    )


def get_workflow_registry(
    aggregator: Annotated[RiskAggregatorService, Depends(get_risk_aggregator)],
) -> WorkflowRegistry:
    """Get or create the workflow registry."""
    global _workflow_registry

    if _workflow_registry is None:
        _workflow_registry = WorkflowRegistry(aggregator)

    return _workflow_registry


async def cleanup_dependencies() -> None:
    """Cleanup dependency instances on shutdown."""
    global _blocklist_instance, _contact_instance, _report_instance
    global _registry_instance, _ledger_instances, _workflow_registry

    if _blocklist_instance:
        await _blocklist_instance.close()
        _blocklist_instance = None

    if _contact_instance:
        await _contact_instance.close()
        _contact_instance = None

    if _report_instance:
        await _report_instance.close()
        _report_instance = None

    if _registry_instance:
        await _registry_instance.close()
        _registry_instance = None

    if _ledger_instances:
        for ledger in _ledger_instances.values():
            await ledger.close()
        _ledger_instances = None

    _workflow_registry = None
