"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py) and delegates the work
to the application services (DiagnosticsService, LeadService). This is the
only place where errors are turned into user-facing messages. Every handler
returns True on success so the CLI can set its exit code.
"""

import asyncio
import logging
from typing import Optional

from auracli.core.services.diagnostics_service import DiagnosticsService
from auracli.core.services.lead_service import LeadService
from auracli.domain.interfaces.user_interface import UserInterface
from auracli.domain.models.common import FilePath
from auracli.domain.models.errors import (
    AccessDeniedError, AuraError, ServiceBusyError, StoreUnavailableError,
)
from auracli.infrastructure.ai.gemini_client import DEFAULT_MORPH_MONTHS, DEFAULT_MORPH_PROTOCOL
from auracli.infrastructure.config.bootstrap import SystemContext
from auracli.infrastructure.identity.session import (
    Identity, ProviderAccessGate, SessionIdentityProvider,
)

logger = logging.getLogger(__name__)

ACCESS_DENIED_MESSAGE = "Access denied. Invalid provider key."


class CommandHandler:
    """Handles incoming commands and delegates to appropriate services."""

    def __init__(
        self,
        context: SystemContext,
        diagnostics_service: DiagnosticsService,
        lead_service: Optional[LeadService],
        identity_provider: SessionIdentityProvider,
        access_gate: ProviderAccessGate,
        ui: UserInterface,
    ):
        self.context = context
        self.diagnostics_service = diagnostics_service
        self.lead_service = lead_service
        self.identity_provider = identity_provider
        self.access_gate = access_gate
        self.ui = ui

    def _identity(self) -> Identity:
        return self.identity_provider.current or self.identity_provider.sign_in(
            self.context.settings.auth_token
        )

    def _report(self, error: Exception) -> None:
        """Maps an error to one user-facing message."""
        if isinstance(error, ServiceBusyError):
            self.ui.display_error(error.user_message)
        elif isinstance(error, (AuraError, OSError, ValueError)):
            self.ui.display_error(str(error))
        else:
            self.ui.display_error(f"Unexpected error: {error}")

    def _require_leads(self, access_key: Optional[str]) -> LeadService:
        if not self.access_gate.authenticate(access_key):
            raise AccessDeniedError(ACCESS_DENIED_MESSAGE)
        if self.lead_service is None:
            raise StoreUnavailableError(
                f"Lead store unavailable ({self.context.status.value}). {self.context.error or ''}".strip()
            )
        return self.lead_service

    def handle_status(self) -> bool:
        logger.info(f"System status: {self.context.status.value}")
        self.ui.display_system_status(self.context.status.value, self.context.error or "")
        if not self.context.settings.gemini_api_key:
            self.ui.display_warning("AI Key Missing. Configure GEMINI_API_KEY.")
        return self.context.ready

    async def handle_analyze(
        self,
        photo: str,
        lead_name: Optional[str] = None,
        lead_email: Optional[str] = None,
        morph_out: Optional[str] = None,
        months: int = DEFAULT_MORPH_MONTHS,
        protocol: str = DEFAULT_MORPH_PROTOCOL,
    ) -> bool:
        """Analyze a photo, then optionally save a lead and write a morph image."""
        logger.info(f"Handling 'analyze' command for photo: {photo}")
        try:
            self.ui.display_info(f"Analyzing {photo}...")
            result = await self.diagnostics_service.analyze(FilePath(photo))
            self.ui.display_analysis(result)

            if morph_out:
                await self.diagnostics_service.morph(
                    FilePath(photo), FilePath(morph_out), months, protocol, patient_name=lead_name
                )
                self.ui.display_info(f"Morph image saved to {morph_out}")

            if lead_name or lead_email:
                if self.lead_service is None:
                    self.ui.display_warning("Lead not saved: the lead store is not configured.")
                else:
                    await self.lead_service.connect()
                    lead = await self.lead_service.save_lead(
                        lead_name or "", lead_email or "", result, self._identity()
                    )
                    self.ui.display_info(f"Lead {lead.id} saved ({lead.est_value}).")
            return True
        except (AuraError, OSError, ValueError) as e:
            logger.error(f"Analyze command failed: {e}", exc_info=True)
            self._report(e)
            return False

    async def handle_morph(
        self,
        photo: str,
        output: str,
        months: int = DEFAULT_MORPH_MONTHS,
        protocol: str = DEFAULT_MORPH_PROTOCOL,
    ) -> bool:
        logger.info(f"Handling 'morph' command for photo: {photo}")
        try:
            self.ui.display_info(f"Generating morph image for {photo}...")
            await self.diagnostics_service.morph(FilePath(photo), FilePath(output), months, protocol)
            self.ui.display_info(f"Morph image saved to {output}")
            return True
        except (AuraError, OSError, ValueError) as e:
            logger.error(f"Morph command failed: {e}", exc_info=True)
            self._report(e)
            return False

    async def handle_list_leads(
        self,
        access_key: Optional[str],
        watch: bool = False,
        interval: float = 2.0,
        max_polls: Optional[int] = None,
    ) -> bool:
        """Shows the lead list once, or keeps it live until interrupted when ``watch`` is set.

        ``max_polls`` bounds the number of refresh rounds in watch mode.
        """
        logger.info(f"Handling 'leads' command (watch={watch})")
        try:
            lead_service = self._require_leads(access_key)
            await lead_service.connect()
            if not watch:
                self.ui.display_leads(await lead_service.list_leads())
                return True

            unsubscribe = lead_service.watch_leads(self.ui.display_leads, self._report)
            try:
                polls = 0
                while max_polls is None or polls < max_polls:
                    await asyncio.sleep(interval)
                    await lead_service.refresh()
                    polls += 1
            finally:
                unsubscribe()
            return True
        except AuraError as e:
            logger.error(f"Leads command failed: {e}")
            self._report(e)
            return False

    async def handle_lead_status(self, access_key: Optional[str], lead_id: str, status: str) -> bool:
        logger.info(f"Handling 'lead-status' command for lead: {lead_id}")
        try:
            lead_service = self._require_leads(access_key)
            await lead_service.connect()
            await lead_service.update_status(lead_id, status)
            self.ui.display_info(f"Lead {lead_id} marked '{status.strip().lower()}'.")
            return True
        except AuraError as e:
            logger.error(f"Lead status command failed: {e}")
            self._report(e)
            return False
