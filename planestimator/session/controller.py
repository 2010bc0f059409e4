"""EstimatorSession — presentation state for one user and the wiring from
user actions to the extraction service and the estimate engine.

Every committed state change ends in :meth:`EstimatorSession.recompute`,
which re-runs the engine from scratch.  Only :meth:`select_file` suspends;
a result that arrives after the file was removed or replaced is discarded.

Usage::

    session = EstimatorSession.from_config(".")
    await session.select_file("plan.pdf", data, "application/pdf")
    session.select_spec("roof", "roof_tile")
    session.toggle_option("solar_panel", True)
    session.estimate.total
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from planestimator.catalog.admin import AdminGate, CatalogEditor
from planestimator.catalog.models import Catalog
from planestimator.catalog.store import CatalogStore
from planestimator.config_manager import ConfigManager
from planestimator.errors import AuthFailure, ExtractionFailure
from planestimator.estimate.context import check_formulas
from planestimator.estimate.engine import EstimateEngine
from planestimator.estimate.models import Estimate
from planestimator.estimate.report import EstimateReport
from planestimator.estimate.selections import Selections
from planestimator.extraction.providers.base import ExtractionProvider
from planestimator.extraction.providers.gemini import GeminiProvider
from planestimator.extraction.providers.ollama import OllamaProvider
from planestimator.extraction.schema import ExtractedPlan
from planestimator.extraction.service import PlanExtractor

logger = logging.getLogger(__name__)


def build_provider(config: dict[str, str]) -> ExtractionProvider:
    """Gemini when an API key is configured, otherwise a local Ollama model."""
    api_key = config.get("GEMINI_API_KEY", "")
    if api_key:
        return GeminiProvider(api_key=api_key, model=config.get("GEMINI_MODEL", "gemini-2.5-flash"))
    logger.info("GEMINI_API_KEY not set, using Ollama at %s", config.get("OLLAMA_HOST"))
    return OllamaProvider(
        base_url=config.get("OLLAMA_HOST", "http://localhost:11434"),
        model=config.get("OLLAMA_MODEL", "llava"),
    )


class EstimatorSession:
    """State and actions of one estimating session.

    Parameters
    ----------
    extractor:
        Reads uploaded documents.
    store:
        Persisted catalog; loaded once at start and written on admin save.
    passphrase:
        Shared passphrase of the catalog editor gate.
    engine:
        Estimate engine.  Defaults to :class:`EstimateEngine`.
    """

    def __init__(
        self,
        extractor: PlanExtractor,
        store: CatalogStore,
        *,
        passphrase: str,
        engine: EstimateEngine | None = None,
    ) -> None:
        self.extractor = extractor
        self.store = store
        self.engine = engine or EstimateEngine()
        self._gate = AdminGate(passphrase)
        self._generation = 0

        self.catalog: Catalog = store.load()
        self.file_name: str | None = None
        self.progress: int | None = None
        self.is_loading = False
        self.plan: ExtractedPlan | None = None
        self.selections = Selections()
        self.estimate: Estimate | None = None
        self.error = ""

        self.admin_open = False
        self.admin_authenticated = False
        self.admin_error = ""

    @classmethod
    def from_config(cls, project_root: str | Path = ".") -> EstimatorSession:
        """Build a session from the layered configuration under *project_root*."""
        config = ConfigManager().load_config(project_root)
        catalog_path = Path(config["PLANEST_CATALOG_PATH"])
        if not catalog_path.is_absolute():
            catalog_path = Path(project_root) / catalog_path
        return cls(
            PlanExtractor(build_provider(config)),
            CatalogStore(catalog_path),
            passphrase=config["PLANEST_ADMIN_PASSPHRASE"],
        )

    # -- document ---------------------------------------------------------------

    def _is_current(self, token: int) -> bool:
        return token == self._generation

    async def select_file(
        self,
        file_name: str,
        document: bytes,
        mime_type: str,
        *,
        instruction: str | None = None,
    ) -> ExtractedPlan | None:
        """Upload a document and extract its attributes.

        Replaces any previous document.  On failure the error message is set,
        the file is cleared so it can be uploaded again, and the previous
        plan and estimate are left untouched.

        Returns the new plan, or *None* on failure or when the result was
        discarded as stale.
        """
        self._generation += 1
        token = self._generation
        self.file_name = file_name
        self.progress = 0
        self.is_loading = True
        self.error = ""

        def on_progress(pct: int) -> None:
            if self._is_current(token):
                self.progress = pct

        try:
            plan = await self.extractor.extract_async(
                document, mime_type, instruction=instruction, on_progress=on_progress,
            )
        except ExtractionFailure as exc:
            self._fail(token, str(exc))
            return None
        except Exception:
            logger.exception("Unexpected extraction error for %s", file_name)
            self._fail(token, "不明なエラーが発生しました。")
            return None

        if not self._is_current(token):
            logger.debug("Discarding stale extraction result for %s", file_name)
            return None

        self.is_loading = False
        self.progress = None
        self.plan = plan
        self.recompute()
        return plan

    def _fail(self, token: int, message: str) -> None:
        if not self._is_current(token):
            logger.debug("Discarding stale extraction failure: %s", message)
            return
        logger.warning("Extraction failed: %s", message)
        self.error = f"抽出に失敗しました: {message}"
        self.file_name = None
        self.is_loading = False
        self.progress = None

    def remove_file(self) -> None:
        """Clear the document, its attributes and the estimate.

        An extraction still in flight is invalidated.
        """
        self._generation += 1
        self.file_name = None
        self.progress = None
        self.is_loading = False
        self.plan = None
        self.error = ""
        self.recompute()

    def edit_field(self, key: str, value: Any) -> None:
        """Overwrite one extracted attribute with the user's value."""
        if self.plan is None:
            logger.debug("Ignoring edit of '%s' before extraction", key)
            return
        self.plan = self.plan.with_field(key, value)
        self.recompute()

    # -- selections -------------------------------------------------------------

    def select_spec(self, category_id: str, option_id: str | None) -> None:
        self.selections = self.selections.select_spec(self.catalog, category_id, option_id)
        self.recompute()

    def toggle_option(self, option_id: str, checked: bool) -> None:
        self.selections = self.selections.toggle_option(self.catalog, option_id, checked)
        self.recompute()

    # -- admin ------------------------------------------------------------------

    def open_admin(self) -> None:
        self.admin_open = True
        self.admin_error = ""

    def authenticate(self, passphrase: str) -> bool:
        """Check the editor passphrase; a mismatch only sets :attr:`admin_error`."""
        try:
            self._gate.authenticate(passphrase)
        except AuthFailure as exc:
            self.admin_authenticated = False
            self.admin_error = str(exc)
            return False
        self.admin_authenticated = True
        self.admin_error = ""
        return True

    def close_admin(self) -> None:
        self.admin_open = False
        self.admin_authenticated = False
        self.admin_error = ""

    def editor(self) -> CatalogEditor:
        """A :class:`CatalogEditor` over the current catalog."""
        self._require_admin()
        return CatalogEditor(self.catalog)

    def save_catalog(self, catalog: Catalog) -> bool:
        """Persist *catalog* in place of the current one and refresh the estimate.

        A write failure leaves the current catalog and the open editor as
        they were, sets :attr:`admin_error` and returns *False*.
        """
        self._require_admin()
        problems = check_formulas(catalog)
        if problems:
            logger.warning("Saving catalog with %d failing formula(s): %s", len(problems), ", ".join(problems))
        try:
            self.store.save(catalog)
        except OSError as exc:
            logger.warning("Could not save catalog to %s: %s", self.store.path, exc)
            self.admin_error = f"カタログを保存できませんでした: {exc}"
            return False
        self.catalog = catalog.model_copy(deep=True)
        self.selections = self.selections.reconcile(self.catalog)
        self.close_admin()
        self.recompute()
        return True

    def _require_admin(self) -> None:
        if not self.admin_authenticated:
            raise AuthFailure("Catalog editor is locked.")

    # -- estimate ---------------------------------------------------------------

    def recompute(self) -> Estimate | None:
        """Re-run the engine against the current state.

        The engine only runs once an extraction has completed.
        """
        if self.plan is None or self.plan.is_empty():
            self.estimate = None
            return None
        self.estimate = self.engine.estimate(self.plan, self.selections, self.catalog)
        return self.estimate

    def report(self) -> EstimateReport | None:
        if self.estimate is None:
            return None
        return EstimateReport(self.estimate, self.plan, self.selections, self.catalog)
