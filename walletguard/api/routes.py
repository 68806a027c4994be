"""API route definitions."""

import asyncio
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import JSONResponse

from walletguard.api.dependencies import (
    get_blocklist_store,
    get_contact_store,
    get_ledger_clients,
    get_report_store,
    get_risk_aggregator,
    get_workflow_registry,
)
from walletguard.config import Settings, get_settings
from walletguard.constants import COMMUNITY_REPORT_LIST_LIMIT, SUPPORTED_CHAINS
from walletguard.core.blocklist import BlocklistStore
from walletguard.core.contacts import TrustedContactStore
from walletguard.core.exceptions import (
    AddressAlreadyBlocked,
    AlreadyReported,
    BlocklistStorageError,
    ContactAlreadyExists,
    ContactNotFound,
    InsufficientBalance,
    InvalidAddressFormat,
    StorageError,
    TransitionNotAllowed,
    UnsupportedChainError,
)
from walletguard.core.ledger import LedgerClient
from walletguard.core.reports import FraudReportStore
from walletguard.models.blocklist import (
    BlocklistAddRequest,
    BlocklistEntry,
    BlocklistResponse,
)
from walletguard.models.contacts import (
    ContactAddRequest,
    ContactListResponse,
    ContactUpdateRequest,
    TrustedContact,
)
from walletguard.models.reports import CommunityReport, FraudReportRequest, ReportSubmission
from walletguard.models.risk import (
    AssessRequest,
    HealthResponse,
    NormalizeRequest,
    RiskVerdict,
)
from walletguard.models.workflow import (
    RecipientRequest,
    SubmitRequest,
    WorkflowCreateRequest,
    WorkflowSnapshot,
)
from walletguard.services.address import normalize_address
from walletguard.services.risk_aggregator import RiskAggregatorService
from walletguard.services.send_workflow import (
    SendWorkflow,
    SignedTransactionBroadcaster,
    WorkflowRegistry,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _normalize_or_400(address: str, chain: str) -> str:
    """Normalize an address, mapping failures to 400 responses."""
    try:
        return normalize_address(address, chain)
    except UnsupportedChainError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported blockchain: {e.chain}. Supported chains: {list(SUPPORTED_CHAINS.keys())}",
        )
    except InvalidAddressFormat as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)


def _canonical(address: str, chain: str) -> str:
    """Best-effort canonical form for lookups of already stored addresses."""
    try:
        return normalize_address(address, chain)
    except (InvalidAddressFormat, UnsupportedChainError):
        return address.strip()


# --- Risk assessment -------------------------------------------------------


@router.post(
    "/risk/assess",
    response_model=RiskVerdict,
    tags=["risk"],
    summary="Assess Recipient Risk",
    description="Check a recipient against the user's blocklist, the abuse registry and on-chain activity.",
)
async def assess_recipient(
    request: AssessRequest,
    aggregator: Annotated[RiskAggregatorService, Depends(get_risk_aggregator)],
) -> RiskVerdict:
    """
    Produce a risk verdict for a recipient.

    - **user_id**: Owner of the blocklist to apply
    - **address**: Raw address, payment URI (solana:...) or explorer URL
    - **chain**: solana or ethereum
    """
    address = _normalize_or_400(request.address, request.chain)
    return await aggregator.assess(request.user_id, address, request.chain.lower())


@router.post(
    "/addresses/normalize",
    tags=["risk"],
    summary="Normalize Address",
    description="Extract and validate an address from user input.",
)
async def normalize(request: NormalizeRequest) -> dict[str, str]:
    """Normalize a raw address, payment URI or URL."""
    address = _normalize_or_400(request.address, request.chain)
    return {"address": address, "chain": request.chain.lower()}


# --- Blocklist -------------------------------------------------------------


@router.get(
    "/users/{user_id}/blocklist",
    response_model=BlocklistResponse,
    tags=["blocklist"],
    summary="List Blocklist",
)
async def list_blocklist(
    user_id: str,
    store: Annotated[BlocklistStore, Depends(get_blocklist_store)],
) -> BlocklistResponse:
    """List every blocked address of a user."""
    try:
        entries = await store.list_entries(user_id)
        last_updated = await store.get_last_updated(user_id)
    except BlocklistStorageError as e:
        logger.error(f"Blocklist storage error: {e.message}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)
    return BlocklistResponse(
        user_id=user_id, entries=entries, count=len(entries), last_updated=last_updated
    )


@router.post(
    "/users/{user_id}/blocklist",
    response_model=BlocklistEntry,
    status_code=status.HTTP_201_CREATED,
    tags=["blocklist"],
    summary="Block Address",
)
async def add_to_blocklist(
    user_id: str,
    request: BlocklistAddRequest,
    store: Annotated[BlocklistStore, Depends(get_blocklist_store)],
) -> BlocklistEntry:
    """Add an address to a user's blocklist."""
    address = _normalize_or_400(request.address, request.chain)
    try:
        return await store.add_entry(user_id, address, request.reason)
    except AddressAlreadyBlocked as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    except BlocklistStorageError as e:
        logger.error(f"Blocklist storage error: {e.message}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)


@router.get(
    "/users/{user_id}/blocklist/{address}",
    response_model=BlocklistEntry,
    tags=["blocklist"],
    summary="Get Blocklist Entry",
)
async def get_blocklist_entry(
    user_id: str,
    address: str,
    store: Annotated[BlocklistStore, Depends(get_blocklist_store)],
    chain: Annotated[str, Query()] = "solana",
) -> BlocklistEntry:
    """Get a single blocklist entry."""
    try:
        entry = await store.get_entry(user_id, _canonical(address, chain))
    except BlocklistStorageError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Address is not blocked")
    return entry


@router.delete(
    "/users/{user_id}/blocklist/{address}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["blocklist"],
    summary="Unblock Address",
)
async def remove_from_blocklist(
    user_id: str,
    address: str,
    store: Annotated[BlocklistStore, Depends(get_blocklist_store)],
    chain: Annotated[str, Query()] = "solana",
) -> Response:
    """Remove an address from a user's blocklist. Unknown addresses are ignored."""
    try:
        await store.remove_entry(user_id, _canonical(address, chain))
    except BlocklistStorageError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- Trusted contacts ------------------------------------------------------


@router.get(
    "/users/{user_id}/contacts",
    response_model=ContactListResponse,
    tags=["contacts"],
    summary="List Trusted Contacts",
)
async def list_contacts(
    user_id: str,
    store: Annotated[TrustedContactStore, Depends(get_contact_store)],
) -> ContactListResponse:
    """List every trusted contact of a user."""
    try:
        contacts = await store.list_contacts(user_id)
    except StorageError as e:
        logger.error(f"Contact storage error: {e.message}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)
    return ContactListResponse(user_id=user_id, contacts=contacts, count=len(contacts))


@router.post(
    "/users/{user_id}/contacts",
    response_model=TrustedContact,
    status_code=status.HTTP_201_CREATED,
    tags=["contacts"],
    summary="Add Trusted Contact",
)
async def add_contact(
    user_id: str,
    request: ContactAddRequest,
    store: Annotated[TrustedContactStore, Depends(get_contact_store)],
) -> TrustedContact:
    """Save an address under a name."""
    address = _normalize_or_400(request.address, request.chain)
    try:
        return await store.add_contact(user_id, address, request.name, request.notes)
    except ContactAlreadyExists as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    except StorageError as e:
        logger.error(f"Contact storage error: {e.message}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)


@router.get(
    "/users/{user_id}/contacts/{address}",
    response_model=TrustedContact,
    tags=["contacts"],
    summary="Get Trusted Contact",
)
async def get_contact(
    user_id: str,
    address: str,
    store: Annotated[TrustedContactStore, Depends(get_contact_store)],
    chain: Annotated[str, Query()] = "solana",
) -> TrustedContact:
    """Get a single trusted contact."""
    try:
        contact = await store.get_contact(user_id, _canonical(address, chain))
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)
    if contact is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contact not found")
    return contact


@router.patch(
    "/users/{user_id}/contacts/{address}",
    response_model=TrustedContact,
    tags=["contacts"],
    summary="Update Trusted Contact",
)
async def update_contact(
    user_id: str,
    address: str,
    request: ContactUpdateRequest,
    store: Annotated[TrustedContactStore, Depends(get_contact_store)],
    chain: Annotated[str, Query()] = "solana",
) -> TrustedContact:
    """Rename a contact or edit its notes."""
    try:
        return await store.update_contact(
            user_id, _canonical(address, chain), name=request.name, notes=request.notes
        )
    except ContactNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)


@router.delete(
    "/users/{user_id}/contacts/{address}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["contacts"],
    summary="Remove Trusted Contact",
)
async def remove_contact(
    user_id: str,
    address: str,
    store: Annotated[TrustedContactStore, Depends(get_contact_store)],
    chain: Annotated[str, Query()] = "solana",
) -> Response:
    """Remove a trusted contact. Unknown addresses are ignored."""
    try:
        await store.remove_contact(user_id, _canonical(address, chain))
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- Community fraud reports -----------------------------------------------


@router.post(
    "/reports",
    response_model=ReportSubmission,
    status_code=status.HTTP_201_CREATED,
    tags=["reports"],
    summary="Report Wallet",
    description="File a fraud report against an address. Each user counts once per address.",
)
async def submit_report(
    request: FraudReportRequest,
    store: Annotated[FraudReportStore, Depends(get_report_store)],
) -> ReportSubmission:
    """
    Report a wallet as fraudulent.

    - **address**: Reported address
    - **reporter_id**: Reporting user
    - **category**: Phishing, Scam, Fraud or Others
    - **note**: Optional explanation
    """
    address = _normalize_or_400(request.address, request.chain)
    try:
        return await store.submit_report(address, request.reporter_id, request.category, request.note)
    except AlreadyReported as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    except StorageError as e:
        logger.error(f"Report storage error: {e.message}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)


@router.get(
    "/reports",
    response_model=list[CommunityReport],
    tags=["reports"],
    summary="List Reported Wallets",
)
async def list_reports(
    store: Annotated[FraudReportStore, Depends(get_report_store)],
    limit: Annotated[int, Query(ge=1, le=COMMUNITY_REPORT_LIST_LIMIT)] = COMMUNITY_REPORT_LIST_LIMIT,
) -> list[CommunityReport]:
    """Reported wallets, most frequently reported first."""
    try:
        return await store.list_reports(limit)
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)


@router.get(
    "/reports/{address}",
    response_model=CommunityReport,
    tags=["reports"],
    summary="Get Wallet Reports",
)
async def get_report(
    address: str,
    store: Annotated[FraudReportStore, Depends(get_report_store)],
    chain: Annotated[str, Query()] = "solana",
) -> CommunityReport:
    """Aggregate of the reports filed against an address."""
    try:
        report = await store.get_report(_canonical(address, chain))
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)
    if report is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Address has not been reported")
    return report


# --- Send workflow ---------------------------------------------------------


def _get_workflow(workflow_id: str, registry: WorkflowRegistry) -> SendWorkflow:
    workflow = registry.get(workflow_id)
    if workflow is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workflow not found")
    return workflow


@router.post(
    "/workflows",
    response_model=WorkflowSnapshot,
    status_code=status.HTTP_201_CREATED,
    tags=["workflow"],
    summary="Start Send Workflow",
)
async def create_workflow(
    request: WorkflowCreateRequest,
    registry: Annotated[WorkflowRegistry, Depends(get_workflow_registry)],
) -> WorkflowSnapshot:
    """Start a new send workflow at address entry."""
    try:
        workflow = registry.create(request.user_id, request.chain)
    except UnsupportedChainError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    return workflow.snapshot()


@router.get(
    "/workflows/{workflow_id}",
    response_model=WorkflowSnapshot,
    tags=["workflow"],
    summary="Get Send Workflow",
)
async def get_workflow(
    workflow_id: str,
    registry: Annotated[WorkflowRegistry, Depends(get_workflow_registry)],
) -> WorkflowSnapshot:
    """Current workflow state."""
    return _get_workflow(workflow_id, registry).snapshot()


@router.post(
    "/workflows/{workflow_id}/recipient",
    response_model=WorkflowSnapshot,
    tags=["workflow"],
    summary="Enter Recipient",
)
async def enter_recipient(
    workflow_id: str,
    request: RecipientRequest,
    registry: Annotated[WorkflowRegistry, Depends(get_workflow_registry)],
) -> WorkflowSnapshot:
    """Enter a recipient and run the risk check."""
    workflow = _get_workflow(workflow_id, registry)
    try:
        await workflow.check_recipient(request.address)
    except InvalidAddressFormat as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except TransitionNotAllowed as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    return workflow.snapshot()


@router.post(
    "/workflows/{workflow_id}/proceed",
    response_model=WorkflowSnapshot,
    tags=["workflow"],
    summary="Proceed To Amount",
)
async def proceed(
    workflow_id: str,
    registry: Annotated[WorkflowRegistry, Depends(get_workflow_registry)],
) -> WorkflowSnapshot:
    """Move from risk review to amount entry (safe verdicts only)."""
    workflow = _get_workflow(workflow_id, registry)
    try:
        workflow.proceed()
    except TransitionNotAllowed as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    return workflow.snapshot()


@router.post(
    "/workflows/{workflow_id}/back",
    response_model=WorkflowSnapshot,
    tags=["workflow"],
    summary="Back To Address Entry",
)
async def back_to_address(
    workflow_id: str,
    registry: Annotated[WorkflowRegistry, Depends(get_workflow_registry)],
) -> WorkflowSnapshot:
    """Return from risk review to address entry."""
    workflow = _get_workflow(workflow_id, registry)
    try:
        workflow.back_to_address()
    except TransitionNotAllowed as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    return workflow.snapshot()


@router.post(
    "/workflows/{workflow_id}/submit",
    response_model=WorkflowSnapshot,
    tags=["workflow"],
    summary="Submit Transfer",
    description="Broadcast a transfer signed by the user's wallet extension.",
)
async def submit_transfer(
    workflow_id: str,
    request: SubmitRequest,
    registry: Annotated[WorkflowRegistry, Depends(get_workflow_registry)],
    ledgers: Annotated[dict[str, LedgerClient], Depends(get_ledger_clients)],
) -> WorkflowSnapshot:
    """Validate amount and wallet, then broadcast the signed transaction."""
    workflow = _get_workflow(workflow_id, registry)
    ledger = ledgers.get(workflow.chain)
    if ledger is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"No ledger configured for {workflow.chain}",
        )
    broadcaster = SignedTransactionBroadcaster(ledger, request.signed_transaction)
    try:
        return await workflow.submit(
            request.amount, request.wallet, broadcaster, request.token
        )
    except InsufficientBalance as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.message)
    except TransitionNotAllowed as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)


@router.post(
    "/workflows/{workflow_id}/reset",
    response_model=WorkflowSnapshot,
    tags=["workflow"],
    summary="Reset Send Workflow",
)
async def reset_workflow(
    workflow_id: str,
    registry: Annotated[WorkflowRegistry, Depends(get_workflow_registry)],
) -> WorkflowSnapshot:
    """Clear the workflow and return to address entry."""
    workflow = _get_workflow(workflow_id, registry)
    workflow.reset()
    return workflow.snapshot()


@router.delete(
    "/workflows/{workflow_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["workflow"],
    summary="Discard Send Workflow",
)
async def discard_workflow(
    workflow_id: str,
    registry: Annotated[WorkflowRegistry, Depends(get_workflow_registry)],
) -> Response:
    """Forget a workflow (user navigated away)."""
    registry.discard(workflow_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- Service ---------------------------------------------------------------


@router.get(
    "/chains",
    tags=["service"],
    summary="List Supported Chains",
)
async def list_supported_chains() -> JSONResponse:
    """List all supported blockchain networks."""
    chains = [
        {
            "slug": config.slug,
            "name": config.name,
            "symbol": config.symbol,
            "family": config.family.value,
        }
        for config in SUPPORTED_CHAINS.values()
    ]
    return JSONResponse(content={"chains": chains, "count": len(chains)})


@router.get(
    "/health",
    response_model=HealthResponse,
    tags=["service"],
    summary="Health Check",
    description="Check API and blocklist storage health status.",
)
async def health_check(
    store: Annotated[BlocklistStore, Depends(get_blocklist_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> HealthResponse:
    """Check API health and blocklist connectivity."""
    store_healthy = await store.ping()

    return HealthResponse(
        status="healthy" if store_healthy else "degraded",
        version=settings.app_version,
        blocklist_status="connected" if store_healthy else "disconnected",
    )


@router.get(
    "/providers/health",
    tags=["service"],
    summary="Ledger Health Check",
)
async def providers_health_check(
    ledgers: Annotated[dict[str, LedgerClient], Depends(get_ledger_clients)],
) -> JSONResponse:
    """Check every configured ledger client."""
    results = await asyncio.gather(*(ledger.health_check() for ledger in ledgers.values()))
    providers = dict(zip(ledgers.keys(), results))
    all_healthy = all(result.get("status") == "healthy" for result in results)
    return JSONResponse(
        content={
            "status": "healthy" if all_healthy else "degraded",
            "providers": providers,
        }
    )
