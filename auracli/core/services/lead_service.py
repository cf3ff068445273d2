"""Lead use cases: build, save, list, watch and update sales leads."""

import logging
from typing import Callable, List, Optional

from auracli.domain.interfaces.document_store import (
    SERVER_TIMESTAMP, DocumentStore, Increment, Snapshot, Unsubscribe,
)
from auracli.domain.models.common import DocumentId, leads_collection
from auracli.domain.models.diagnostics import AnalysisResult, format_currency
from auracli.domain.models.errors import LeadValidationError, StoreUnavailableError
from auracli.domain.models.lead import Lead
from auracli.infrastructure.identity.session import Identity

logger = logging.getLogger(__name__)

SYNC_FAILED_MESSAGE = "Database sync failed."


def _sorted_leads(snapshot: Snapshot) -> List[Lead]:
    leads = [Lead.from_document(doc_id, data) for doc_id, data in snapshot]
    return sorted(leads, key=lambda lead: lead.created_at or 0, reverse=True)


class LeadService:
    """Persists leads in the ``artifacts/<app_id>/public/data/leads`` collection."""

    def __init__(self, store: DocumentStore, app_id: str):
        self.store = store
        self.collection = leads_collection(app_id)

    async def connect(self) -> None:
        try:
            await self.store.open()
        except (OSError, ValueError) as e:
            logger.error(f"Could not open document store: {e}", exc_info=True)
            raise StoreUnavailableError(SYNC_FAILED_MESSAGE) from e

    def build_lead(self, name: str, email: str, analysis: AnalysisResult, identity: Identity) -> Lead:
        name = (name or "").strip()
        email = (email or "").strip()
        if not name:
            raise LeadValidationError("Lead name is required.")
        if "@" not in email:
            raise LeadValidationError(f"Invalid email address: '{email}'")
        return Lead(
            name=name,
            email=email,
            aura_score=analysis.aura_score,
            est_value=format_currency(analysis.total_potential),
            full_roadmap=[item.to_payload() for item in analysis.clinical_roadmap],
            user_id=identity.uid,
        )

    async def save_lead(self, name: str, email: str, analysis: AnalysisResult, identity: Identity) -> Lead:
        lead = self.build_lead(name, email, analysis, identity)
        document = lead.to_document()
        document["createdAt"] = SERVER_TIMESTAMP
        try:
            lead.id = await self.store.create(self.collection, document)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Saving lead failed: {e}", exc_info=True)
            raise StoreUnavailableError(SYNC_FAILED_MESSAGE) from e
        logger.info(f"Lead {lead.id} saved ({lead.est_value})")
        return lead

    async def list_leads(self) -> List[Lead]:
        """Returns all leads, newest first."""
        return _sorted_leads(await self.store.get_all(self.collection))

    def watch_leads(
        self,
        on_leads: Callable[[List[Lead]], None],
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> Unsubscribe:
        """Live view of the lead list, newest first."""
        def handle(snapshot: Snapshot) -> None:
            on_leads(_sorted_leads(snapshot))

        return self.store.subscribe(self.collection, handle, on_error)

    async def refresh(self) -> bool:
        """Reloads leads changed by another process; live listeners are notified."""
        try:
            return await self.store.refresh()
        except (OSError, ValueError) as e:
            logger.error(f"Refreshing leads failed: {e}", exc_info=True)
            raise StoreUnavailableError(SYNC_FAILED_MESSAGE) from e

    async def update_status(self, lead_id: str, status: str) -> None:
        status = (status or "").strip().lower()
        if not status:
            raise LeadValidationError("Status is required.")
        try:
            await self.store.update(self.collection, DocumentId(lead_id), {
                "status": status,
                "touches": Increment(1),
            })
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Updating lead {lead_id} failed: {e}", exc_info=True)
            raise StoreUnavailableError(SYNC_FAILED_MESSAGE) from e
        logger.info(f"Lead {lead_id} marked '{status}'")
