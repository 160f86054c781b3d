import dataclasses
from typing import Any, Dict, Iterable, List, Mapping, Optional, TYPE_CHECKING

from pdf_render_framework.core.logger import get_logger
from pdf_render_framework.components.renderer.options import RendererOptions
from pdf_render_framework.components.renderer.pdf_renderer import PdfRenderer
from pdf_render_framework.components.storage.file_storage import FileStorage
from pdf_render_framework.core.exceptions import PdfRenderFrameworkError, RenderError, StorageError

if TYPE_CHECKING:
    from pdf_render_framework.core.config import ConfigurationManager

logger = get_logger(__name__)  # Module-level logger


@dataclasses.dataclass
class RenderJobResult:
    """Outcome of one job in a batch."""
    url: str
    pdf: Optional[str] = None
    output_path: Optional[str] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class RenderManager:
    """
    Orchestrates PDF rendering by coordinating the renderer and the output storage.

    Each public call owns one engine for its whole duration: the engine is
    spawned (or attached to) on entry and killed on exit, even when a job fails.
    """
    def __init__(self, config: Optional['ConfigurationManager'] = None,
                 options: Optional[RendererOptions] = None,
                 storage: Optional[FileStorage] = None):
        """
        Initializes the RenderManager.

        Args:
            config (Optional[ConfigurationManager]): Source of renderer and storage settings.
            options (Optional[RendererOptions]): Renderer options; built from `config` when omitted.
            storage (Optional[FileStorage]): Output writer; created from `config` on first use.

        Raises:
            ConfigurationError: If the renderer settings in `config` are invalid.
        """
        self.config = config
        self.options = options or RendererOptions.from_config(config)
        self._file_storage = storage
        logger.info("RenderManager initialized.")

    @property
    def file_storage(self) -> FileStorage:
        if self._file_storage is None:
            self._file_storage = FileStorage(config=self.config)
        return self._file_storage

    def create_renderer(self) -> PdfRenderer:
        return PdfRenderer(options=self.options, storage=self._file_storage)

    def error(self, message: str) -> None:
        """Logs a job failure unless `print_errors` is off."""
        if self.options.print_errors:
            logger.error(message)

    async def generate_pdf_buffer(self, url: str, print_options: Optional[Dict[str, Any]] = None) -> bytes:
        """
        Renders `url` and returns the PDF bytes without writing anything to disk.

        Raises:
            BinaryNotFoundError, UnreachableError, ResourceError: If the engine cannot be started.
            RenderError: If the render itself fails.
        """
        try:
            async with self.create_renderer() as renderer:
                return await renderer.render_pdf(url, print_options)
        except PdfRenderFrameworkError as e:
            self.error(f"Failed to generate PDF for {url}: {e}")
            raise

    async def generate_single_pdf(self, url: str, filename: str, overwrite: bool = True) -> str:
        """
        Renders `url` and writes the PDF to `filename`.

        Returns:
            str: The full path of the written file.

        Raises:
            BinaryNotFoundError, UnreachableError, ResourceError: If the engine cannot be started.
            RenderError: If the render fails.
            StorageError: If the file cannot be written.
        """
        logger.info(f"Generating single PDF for URL: {url}")
        try:
            async with self.create_renderer() as renderer:
                data = await renderer.render_pdf(url)
                path = self.file_storage.save_pdf(data, filename, overwrite=overwrite)
        except PdfRenderFrameworkError as e:
            self.error(f"Failed to generate PDF for {url}: {e}")
            raise
        logger.info(f"Saved {path}")
        return path

    async def generate_multiple_pdf(self, jobs: Iterable[Mapping[str, str]], overwrite: bool = True) -> List[RenderJobResult]:
        """
        Renders a batch of `{"url": ..., "pdf": ...}` jobs sequentially over one engine.

        A failing job is logged and recorded in its result; the remaining jobs
        still run. Engine startup failures are not per-job and propagate.

        Returns:
            List[RenderJobResult]: One result per job, in submission order.
        """
        jobs = list(jobs)
        results: List[RenderJobResult] = []
        logger.info(f"Generating {len(jobs)} PDFs")
        async with self.create_renderer() as renderer:
            for job in jobs:
                result = RenderJobResult(url=job["url"], pdf=job.get("pdf"))
                try:
                    data = await renderer.render_pdf(result.url)
                    result.output_path = self.file_storage.save_pdf(data, result.pdf, overwrite=overwrite)
                    logger.info(f"Saved {result.output_path}")
                except (RenderError, StorageError) as e:
                    self.error(f"Failed to generate PDF for {result.url}: {e}")
                    result.error = e
                results.append(result)
        failed = sum(1 for r in results if not r.ok)
        if failed and self.options.print_errors:
            logger.warning(f"{failed} of {len(results)} PDFs failed")
        return results
