"""
Pipeline and batch orchestration.

One request runs resolve -> download -> convert -> save, strictly in that
order, followed by an optional submission. A batch runs requests one after
another; a failing request is recorded and the batch moves on.
"""
import asyncio
import functools
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

from .artifacts import get_artifact_client
from .config import RouterConfig
from .converter import FormatConverter
from .exceptions import PipelineTimeout, ProofRouterError
from .ledger import TransactionSubmitter, get_submitter
from .ledger.submitter import CallKind
from .models import CanonicalProof, RequestOutcome, SubmitMode, TransactionReceipt
from .store import ProofStore

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_TEMPLATE = "proof_{index}.json"


class Pipeline:
    """
    Runs the stages for a single request.

    Blocking network and file work runs in worker threads so the event loop
    stays free; a cancelled download is told to stop through an event.
    """

    def __init__(
        self,
        config: RouterConfig,
        artifact_client: Any = None,
        converter: Optional[FormatConverter] = None,
        store: Optional[ProofStore] = None,
        submitter: Optional[TransactionSubmitter] = None,
        submitter_factory: Optional[Callable[[RouterConfig], TransactionSubmitter]] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Args:
            config: Router configuration
            artifact_client: Client for resolve/download (from config by default)
            converter: Format converter (from config by default)
            store: Proof store
            submitter: Transaction submitter; created lazily when first needed
            submitter_factory: Builds the submitter (defaults to the process-wide cache)
            logger: Optional logger instance
        """
        self.config = config
        self.artifact_client = artifact_client or get_artifact_client(config)
        self.converter = converter or FormatConverter(demo_mode=config.demo_mode)
        self.store = store or ProofStore()
        self._submitter = submitter
        self._submitter_factory = submitter_factory or get_submitter
        self._pending_reset: Optional[asyncio.Future] = None
        self.logger = logger or logging.getLogger(__name__)

    @property
    def submitter(self) -> TransactionSubmitter:
        """The submitter, built on first use so convert-only runs need no phrase."""
        if self._submitter is None:
            self._submitter = self._submitter_factory(self.config)
        return self._submitter

    async def convert_request(self, request_id: str, output_path: Union[str, Path]) -> CanonicalProof:
        """
        Fetch, convert and save one request.

        Raises:
            ProofRouterError: From whichever stage failed
        """
        metadata = await asyncio.to_thread(self.artifact_client.resolve, request_id)
        self.logger.info(f"Resolved {metadata.request_id}: {metadata.scheme.value} artifact")

        cancel = threading.Event()
        try:
            raw_artifact = await asyncio.to_thread(
                functools.partial(self.artifact_client.download, metadata, cancel=cancel)
            )
        except asyncio.CancelledError:
            # The worker thread notices the event and releases its stream
            cancel.set()
            raise

        proof = self.converter.convert(raw_artifact, metadata)
        del raw_artifact

        save_cancel = threading.Event()
        try:
            await asyncio.to_thread(
                functools.partial(self.store.save, output_path, proof, cancel=save_cancel)
            )
        except asyncio.CancelledError:
            # The writer drops its temp file instead of renaming it into place
            save_cancel.set()
            raise
        return proof

    async def submit_saved(self, output_path: Union[str, Path], mode: SubmitMode) -> TransactionReceipt:
        """
        Submit a previously saved proof file.

        Raises:
            ProofRouterError: If loading or submission fails
        """
        kind = CallKind.REMARK if SubmitMode(mode) == SubmitMode.REMARK else CallKind.PROOF
        submitter = self.submitter
        pending, self._pending_reset = self._pending_reset, None
        # A reset left by an earlier event loop finished when that loop shut down
        if pending is not None and pending.get_loop() is asyncio.get_running_loop():
            await pending
        try:
            return await asyncio.to_thread(submitter.submit_file, output_path, kind)
        except asyncio.CancelledError:
            # Closing the socket unblocks the worker. The close handshake can
            # block, so it runs in the executor and the next call waits for it
            self._pending_reset = asyncio.get_running_loop().run_in_executor(None, submitter.reset)
            raise

    def close(self) -> None:
        self.artifact_client.close()


class BatchOrchestrator:
    """Runs many requests sequentially with per-request timeouts and pacing"""

    def __init__(
        self,
        pipeline: Pipeline,
        submit_mode: SubmitMode = SubmitMode.NONE,
        per_request_timeout: Optional[float] = None,
        submit_timeout: Optional[float] = None,
        inter_request_delay: Optional[float] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Args:
            pipeline: Pipeline that executes each request
            submit_mode: Transaction to send after saving
            per_request_timeout: Seconds allowed for fetch, convert and save
            submit_timeout: Seconds allowed for the submission
            inter_request_delay: Pause between requests in seconds
            logger: Optional logger instance
        """
        config = pipeline.config
        self.pipeline = pipeline
        self.submit_mode = SubmitMode(submit_mode)
        self.per_request_timeout = per_request_timeout if per_request_timeout is not None else config.per_request_timeout
        self.submit_timeout = submit_timeout if submit_timeout is not None else config.submit_timeout
        self.inter_request_delay = inter_request_delay if inter_request_delay is not None else config.inter_request_delay
        self.logger = logger or logging.getLogger(__name__)

    async def process(self, request_id: str, output_path: Union[str, Path]) -> RequestOutcome:
        """
        Process one request; never raises for pipeline failures.

        Submission only follows a conversion that succeeded in this call, so
        a file left at ``output_path`` by another request is never sent.
        Resubmitting a saved file goes through Pipeline.submit_saved.
        """
        outcome = RequestOutcome(request_id=request_id, output_path=str(output_path))
        errors = []

        try:
            await asyncio.wait_for(self.pipeline.convert_request(request_id, output_path),
                                   timeout=self.per_request_timeout)
            outcome.converted = True
            self.logger.info(f"Conversion successful for {request_id}")
        except asyncio.TimeoutError:
            errors.append(str(PipelineTimeout("conversion", self.per_request_timeout)))
        except ProofRouterError as e:
            errors.append(f"{type(e).__name__}: {e}")
        except Exception as e:
            self.logger.exception(f"Unexpected error converting {request_id}")
            errors.append(f"Unexpected error: {e}")

        if errors:
            self.logger.error(f"Conversion failed for {request_id}: {errors[-1]}")

        if self.submit_mode != SubmitMode.NONE:
            if not outcome.converted:
                self.logger.info(f"Skipping submission for {request_id}: conversion failed")
            elif Path(output_path).exists():
                await self._submit(outcome, output_path, errors)
            else:
                errors.append(f"Proof file {output_path} missing after conversion")

        outcome.error = "; ".join(errors) or None
        return outcome

    async def _submit(self, outcome: RequestOutcome, output_path: Union[str, Path], errors: List[str]) -> None:
        try:
            receipt = await asyncio.wait_for(self.pipeline.submit_saved(output_path, self.submit_mode),
                                             timeout=self.submit_timeout)
        except asyncio.TimeoutError:
            errors.append(str(PipelineTimeout("submission", self.submit_timeout)))
            self.logger.error(f"Submission timed out for {outcome.request_id}")
            return
        except ProofRouterError as e:
            errors.append(f"{type(e).__name__}: {e}")
            self.logger.error(f"Submission failed for {outcome.request_id}: {e}")
            return
        except Exception as e:
            self.logger.exception(f"Unexpected error submitting {outcome.request_id}")
            errors.append(f"Unexpected error: {e}")
            return

        outcome.receipt = receipt
        if receipt.error:
            errors.append(f"Dispatch error: {receipt.error}")
            self.logger.error(f"Submission failed on chain for {outcome.request_id}: {receipt.error}")
        else:
            outcome.submitted = True
            self.logger.info(f"Submission successful for {outcome.request_id}: {receipt.extrinsic_hash}")

    async def run(
        self,
        request_ids: Sequence[str],
        output_dir: Union[str, Path] = "proofs",
        output_template: str = DEFAULT_OUTPUT_TEMPLATE
    ) -> List[RequestOutcome]:
        """
        Process requests in order.

        Args:
            request_ids: Request ids to process
            output_dir: Directory for proof files
            output_template: File name pattern; receives ``index`` and ``request_id``

        Returns:
            One outcome per request id, in input order
        """
        outcomes = []
        total = len(request_ids)
        self.logger.info(f"Processing {total} proof requests...")

        for index, request_id in enumerate(request_ids):
            if index > 0 and self.inter_request_delay > 0:
                await asyncio.sleep(self.inter_request_delay)

            output_path = Path(output_dir) / output_template.format(index=index, request_id=request_id)
            self.logger.info(f"Processing request {index + 1}/{total}: {request_id} -> {output_path}")
            outcomes.append(await self.process(request_id, output_path))

        self.logger.info("All requests processed")
        return outcomes


def summarize(outcomes: Iterable[RequestOutcome]) -> Dict[str, int]:
    """Counts for a batch report."""
    outcomes = list(outcomes)
    return {
        "total": len(outcomes),
        "converted": sum(1 for o in outcomes if o.converted),
        "submitted": sum(1 for o in outcomes if o.submitted),
        "failed": sum(1 for o in outcomes if o.error),
    }
