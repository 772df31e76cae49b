#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
View controllers for the domains list and the records list of a zone.

A controller owns one ViewState, dispatches backend calls to worker
runnables and applies their results back on the owning thread. Page loads
carry a request token so that a late response for an older request never
overwrites a newer page. Every mutating operation holds a busy flag for the
whole round trip so the triggering control cannot fire it twice.
"""

import logging
from typing import Any, Dict, List, Optional, Set

from PySide6.QtCore import QObject, QThreadPool, Signal

from errors import ErrorKind, is_already_gone
from record_parser import ParseResult, RecordLineParser, resolve_apex
from result_reporter import build_domain_report, build_line_report, classify_bulk_delete
from view_state import DOMAIN_SEARCH_FIELDS, RECORD_SEARCH_FIELDS, LoadState, SortDirection, ViewState
from workers import ApiCallWorker, LoadDomainsWorker, LoadRecordsWorker

logger = logging.getLogger(__name__)


def _error_message(response: Any) -> str:
    if isinstance(response, dict):
        return response.get("message") or "Something went wrong"
    return str(response)


def _error_kind(response: Any) -> Optional[str]:
    if isinstance(response, dict):
        return response.get("kind")
    return None


class ViewController(QObject):
    """Base controller: paging, local filter/sort, selection and busy flags."""

    state_changed = Signal(str)          # LoadState value
    view_changed = Signal()              # derived view or pagination changed
    selection_changed = Signal(int)      # number of selected items
    unauthenticated = Signal()           # backend answered 401
    error = Signal(str)                  # page load failed
    notify = Signal(str, str)            # message, level (success, info, warning, error)
    busy_changed = Signal(str, bool)     # operation, busy
    report_ready = Signal(object)        # Report or BulkDeleteReport

    noun = "items"

    def __init__(self, api_client, view_state: ViewState, thread_pool=None, parent=None):
        """
        Initialize the controller.

        Args:
            api_client: APIClient used by the workers
            view_state: State object owned by this controller
            thread_pool: Pool running the workers, the global pool by default
            parent: Parent QObject
        """
        super().__init__(parent)
        self.api_client = api_client
        self.view_state = view_state
        self.thread_pool = thread_pool or QThreadPool.globalInstance()

        self._latest_token = 0
        self._pending_request = None
        self._busy: Set[str] = set()

    # ------------------------------------------------------------------
    # Paging
    # ------------------------------------------------------------------

    def _create_load_worker(self, token: int, page: int, search: str):
        raise NotImplementedError

    def _set_state(self, state: LoadState) -> None:
        if self.view_state.load_state is state:
            return
        self.view_state.load_state = state
        self.state_changed.emit(state.value)

    def request_page(self, page: int = 1, search: Optional[str] = None) -> int:
        """
        Load a page from the backend.

        Args:
            page: 1-based page number
            search: Server-side search term; None keeps the current one

        Returns:
            The request token of this load
        """
        page = max(1, int(page))
        if search is None:
            search = self.view_state.server_search
        search = search.strip()

        self._latest_token += 1
        token = self._latest_token
        # Overlapping loads keep the state the view settled in before the first one
        settled_state = self.view_state.load_state
        if settled_state is LoadState.LOADING and self._pending_request is not None:
            settled_state = self._pending_request[2]
        self._pending_request = (page, search, settled_state)

        logger.info(f"Requesting {self.noun} page {page} (search '{search}', token {token})")
        self._set_state(LoadState.LOADING)

        worker = self._create_load_worker(token, page, search)
        worker.signals.finished.connect(self._handle_page_result)
        self.thread_pool.start(worker)
        return token

    def refresh(self) -> int:
        """Reload the current page with the current server search."""
        return self.request_page(self.view_state.page, self.view_state.server_search)

    def next_page(self) -> Optional[int]:
        if not self.view_state.pagination.has_next:
            return None
        return self.request_page(self.view_state.page + 1)

    def previous_page(self) -> Optional[int]:
        if not self.view_state.pagination.has_previous:
            return None
        return self.request_page(self.view_state.page - 1)

    def _handle_page_result(self, token: int, success: bool, response: Any) -> None:
        if token != self._latest_token:
            logger.debug(f"Discarding stale {self.noun} response (token {token}, latest {self._latest_token})")
            return

        page, search, settled_state = self._pending_request
        self._pending_request = None

        if success:
            items = response.get("data") or []
            self.view_state.replace_page(items, page, search, response.get("pagination"))
            logger.info(f"Loaded {len(items)} {self.noun} for page {page}")
            self._set_state(LoadState.LOADED)
            self.selection_changed.emit(0)
            self.view_changed.emit()
            return

        if _error_kind(response) == ErrorKind.AUTH.value:
            # Back to where we were; the owner redirects to the login form
            self._set_state(settled_state if settled_state is not LoadState.LOADING else LoadState.IDLE)
            self._on_unauthenticated()
            return

        message = _error_message(response)
        self.view_state.error_message = message
        self._set_state(LoadState.ERROR)
        logger.error(f"Error loading {self.noun}: {message}")
        self.error.emit(message)
        self.notify.emit(f"Error loading {self.noun}: {message}", "error")

    def _on_unauthenticated(self) -> None:
        logger.warning("Backend session is no longer authenticated")
        self.unauthenticated.emit()

    # ------------------------------------------------------------------
    # Local filter, sort and selection
    # ------------------------------------------------------------------

    def apply_local_filter(self, **predicates) -> List[Dict[str, Any]]:
        """Narrow the loaded page; see ViewState.apply_local_filter."""
        before = len(self.view_state.selected_ids)
        derived = self.view_state.apply_local_filter(**predicates)
        if len(self.view_state.selected_ids) != before:
            self.selection_changed.emit(len(self.view_state.selected_ids))
        self.view_changed.emit()
        return derived

    def apply_sort(self, field: str, direction: Optional[SortDirection] = None) -> List[Dict[str, Any]]:
        derived = self.view_state.apply_sort(field, direction)
        self.view_changed.emit()
        return derived

    def toggle_sort(self, field: str) -> SortDirection:
        """Sort by *field*, flipping the direction if it is already the sort field."""
        self.apply_sort(field)
        return self.view_state.sort_direction

    def toggle_select(self, item_id) -> bool:
        selected = self.view_state.toggle_select(item_id)
        self.selection_changed.emit(len(self.view_state.selected_ids))
        return selected

    def select_all(self) -> int:
        count = self.view_state.select_all()
        self.selection_changed.emit(count)
        return count

    def clear_selection(self) -> None:
        self.view_state.clear_selection()
        self.selection_changed.emit(0)

    # ------------------------------------------------------------------
    # Mutating operations
    # ------------------------------------------------------------------

    def is_busy(self, operation: str) -> bool:
        return operation in self._busy

    def _set_busy(self, operation: str, busy: bool) -> None:
        if busy:
            self._busy.add(operation)
        else:
            self._busy.discard(operation)
        self.busy_changed.emit(operation, busy)

    def _start_operation(self, operation: str, func, *args, context: Optional[dict] = None) -> bool:
        """Run *func* on the pool unless *operation* is already in flight."""
        if self.is_busy(operation):
            logger.warning(f"Ignoring {operation}: already in progress")
            self.notify.emit("Please wait for the current operation to finish", "warning")
            return False

        self._set_busy(operation, True)
        worker = ApiCallWorker(operation, func, *args, context=context)
        worker.signals.finished.connect(self._handle_operation_result)
        self.thread_pool.start(worker)
        return True

    def _handle_operation_result(self, operation: str, success: bool, payload: Dict[str, Any]) -> None:
        try:
            handler = getattr(self, f"_on_{operation}_finished")
            handler(success, payload["response"], payload["context"])
        finally:
            self._set_busy(operation, False)

    def _report_failure(self, response: Any, action: str) -> None:
        """Route a failed call: auth failures signal, everything else notifies."""
        if _error_kind(response) == ErrorKind.AUTH.value:
            self._on_unauthenticated()
            return
        message = _error_message(response)
        logger.error(f"Failed to {action}: {message}")
        self.notify.emit(f"Error: {message}", "error")

    def _refresh_after_mutation(self, context: Dict[str, Any]) -> None:
        """Reload after a change unless the user already moved to another page."""
        if not self.view_state.matches_request(context.get("page"), context.get("search")) \
                and self.view_state.load_state is LoadState.LOADING:
            logger.debug("View changed during the operation; the pending load will show the result")
            return
        self.refresh()

    def _view_context(self) -> Dict[str, Any]:
        return {"page": self.view_state.page, "search": self.view_state.server_search}


class DomainsController(ViewController):
    """Controller for the paginated list of zones."""

    noun = "domains"

    def __init__(self, api_client, config_manager, template_store=None, thread_pool=None, parent=None):
        """
        Initialize the domains controller.

        Args:
            api_client: APIClient instance
            config_manager: ConfigManager providing the page size
            template_store: TemplateStore used when adding domains
        """
        view_state = ViewState(config_manager.get_page_size("domains"), DOMAIN_SEARCH_FIELDS)
        super().__init__(api_client, view_state, thread_pool, parent)
        self.template_store = template_store
        self.parser = RecordLineParser(config_manager.get_strict_record_types(),
                                       config_manager.get_validate_all_before_send())

    def _create_load_worker(self, token, page, search):
        return LoadDomainsWorker(self.api_client, token, page, self.view_state.page_size, search)

    def add_domains(self, domains_text: str, template_id: Optional[str] = None) -> bool:
        """
        Add the domains listed in *domains_text*, one per line.

        Args:
            domains_text: Newline separated domain names
            template_id: Template whose records are created in each new zone

        Returns:
            True if the call was dispatched
        """
        result = self.parser.parse_domains(domains_text)
        if not result.domains and not result.rejections:
            self.notify.emit("Please enter at least one domain", "error")
            return False
        if result.rejections:
            for rejection in result.rejections:
                self.notify.emit(rejection.reason, "error")
            return False

        template_records: List[str] = []
        if template_id and self.template_store is not None:
            template = self.template_store.get(template_id)
            if template is not None:
                check = self.parser.parse(template.text, template.proxied_default)
                if check.blocks_submission:
                    self.notify.emit(f"Template '{template.name}' has invalid records:\n{check.error_summary()}",
                                     "error")
                    return False
                template_records = [intent.to_line() for intent in check.intents]

        logger.info(f"Adding {len(result.domains)} domains (template '{template_id or ''}')")
        return self._start_operation(
            "add_domains", self.api_client.add_domains,
            "\n".join(result.domains), template_id or "", template_records,
            context=self._view_context(),
        )

    def _on_add_domains_finished(self, success, response, context):
        if not success:
            self._report_failure(response, "add domains")
            return
        report = build_domain_report(response.get("results") or [])
        self.notify.emit(response.get("message") or report.summary_text(), "success")
        self.report_ready.emit(report)
        self._refresh_after_mutation(context)


class RecordsController(ViewController):
    """Controller for the paginated records of one zone."""

    noun = "records"

    def __init__(self, api_client, config_manager, zone_name: str, thread_pool=None, parent=None,
                 supports_bulk_delete: bool = True):
        """
        Initialize the records controller.

        Args:
            api_client: APIClient instance
            config_manager: ConfigManager providing page size and parser options
            zone_name: Zone whose records are shown
            supports_bulk_delete: Use the batched delete endpoint instead of one call per record
        """
        view_state = ViewState(config_manager.get_page_size("records"), RECORD_SEARCH_FIELDS)
        super().__init__(api_client, view_state, thread_pool, parent)
        self.zone_name = zone_name
        self.supports_bulk_delete = supports_bulk_delete
        self.parser = RecordLineParser(config_manager.get_strict_record_types(),
                                       config_manager.get_validate_all_before_send())
        self.last_parse_result: Optional[ParseResult] = None

    def _create_load_worker(self, token, page, search):
        return LoadRecordsWorker(self.api_client, token, self.zone_name, page, self.view_state.page_size, search)

    # Bulk apply

    def apply_records(self, records_text: str, default_proxied: bool = False) -> bool:
        """
        Validate bulk lines and send the accepted ones.

        Every malformed line is reported at once; with validate-all enabled a
        single rejection blocks the whole batch.

        Returns:
            True if the call was dispatched
        """
        result = self.parser.parse(records_text, default_proxied)
        self.last_parse_result = result

        if not result.outcomes:
            self.notify.emit("Please enter at least one DNS record", "error")
            return False
        if result.blocks_submission:
            logger.warning(f"Blocked submission of {len(result.outcomes)} lines:\n{result.error_summary()}")
            self.notify.emit(f"Invalid DNS records:\n{result.error_summary()}", "error")
            return False
        if result.rejections:
            self.notify.emit(f"Skipping invalid lines:\n{result.error_summary()}", "warning")

        lines = "\n".join(intent.to_line() for intent in result.intents)
        return self._start_operation(
            "apply_records", self.api_client.apply_records, self.zone_name, lines,
            context=self._view_context(),
        )

    def _on_apply_records_finished(self, success, response, context):
        if not success:
            self._report_failure(response, "update DNS records")
            return
        report = build_line_report(response.get("results") or [])
        self.notify.emit(response.get("message") or report.summary_text(),
                         "success" if not report.failed else "warning")
        self.report_ready.emit(report)
        self._refresh_after_mutation(context)

    # Single record edit and delete

    def update_record(self, record_id: str, record_type: str, name: str, content: str,
                      proxied: bool = False) -> bool:
        """
        Update one record; content '@' is replaced with the zone apex.

        Returns:
            True if the call was dispatched
        """
        record_type = (record_type or "").strip().upper()
        name = (name or "").strip()
        content = (content or "").strip()
        if not record_type or not name or not content:
            self.notify.emit("Please fill all required fields", "error")
            return False

        content = resolve_apex(content, self.zone_name)
        return self._start_operation(
            "update_record", self.api_client.update_record,
            self.zone_name, record_id, record_type, name, content, bool(proxied),
            context=self._view_context(),
        )

    def _on_update_record_finished(self, success, response, context):
        if not success:
            self._report_failure(response, "update record")
            return
        self.notify.emit(response.get("message") or "Record updated successfully", "success")
        self._refresh_after_mutation(context)

    def delete_record(self, record_id: str) -> bool:
        """Delete one record; an already missing record counts as deleted."""
        return self._start_operation(
            "delete_record", self.api_client.delete_record, self.zone_name, record_id,
            context={**self._view_context(), "record_id": record_id},
        )

    def _on_delete_record_finished(self, success, response, context):
        if not success:
            raw = response.get("raw_response", {}) if isinstance(response, dict) else {}
            detail = f"{_error_message(response)} {raw.get('error', '')}"
            if _error_kind(response) != ErrorKind.AUTH.value and is_already_gone(detail):
                logger.info(f"Record {context['record_id']} was already deleted")
                self.notify.emit("Record was already deleted", "info")
                self._refresh_after_mutation(context)
                return
            self._report_failure(response, "delete record")
            return
        self.notify.emit(response.get("message") or "Record deleted successfully", "success")
        self._refresh_after_mutation(context)

    # Bulk delete

    def _delete_each(self, zone_name: str, record_ids: List[str]):
        """Per-record fallback producing the same shape as the bulk endpoint."""
        results = []
        for record_id in record_ids:
            success, response = self.api_client.delete_record(zone_name, record_id)
            if not success and _error_kind(response) == ErrorKind.AUTH.value:
                return False, response
            entry = {"record_id": record_id, "success": success}
            if not success:
                raw = response.get("raw_response", {}) if isinstance(response, dict) else {}
                entry["error"] = raw.get("error") or _error_message(response)
            results.append(entry)
        return True, {"success": True, "results": results, "total_count": len(record_ids)}

    def bulk_delete(self) -> bool:
        """
        Delete every selected record.

        The selection is consumed when the call is dispatched; a second call
        while the first is in flight is refused.

        Returns:
            True if the call was dispatched
        """
        if self.is_busy("bulk_delete"):
            logger.warning("Ignoring bulk delete: already in progress")
            self.notify.emit("A bulk delete is already in progress", "warning")
            return False

        record_ids = [item.get("id") for item in self.view_state.selected_items()]
        if not record_ids:
            self.notify.emit("No records selected", "error")
            return False

        func = self.api_client.delete_records_bulk if self.supports_bulk_delete else self._delete_each
        logger.info(f"Deleting {len(record_ids)} records from {self.zone_name}")
        self.view_state.clear_selection()
        self.selection_changed.emit(0)
        return self._start_operation(
            "bulk_delete", func, self.zone_name, record_ids,
            context={**self._view_context(), "record_ids": record_ids},
        )

    def _on_bulk_delete_finished(self, success, response, context):
        results_source = response if success else (response or {}).get("raw_response", {})
        if not success and not results_source.get("results"):
            self._report_failure(response, "delete records")
            return

        report = classify_bulk_delete(results_source)
        if report.has_failures:
            for record_id, error in report.failed.items():
                logger.error(f"Failed to delete record {record_id}: {error}")
            self.notify.emit(report.summary_text(), "error")
        else:
            self.notify.emit(report.summary_text(), "success")
        self.report_ready.emit(report)
        self._refresh_after_mutation(context)
