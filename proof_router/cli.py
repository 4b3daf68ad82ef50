"""
Command-line interface for the proof router.

The secret phrase is read from ZKV_MNEMONIC (environment or .env file) and
is never accepted as an option.
"""
import asyncio
import logging
from pathlib import Path
from typing import List, Optional

import click

from .config import RouterConfig
from .exceptions import ProofRouterError
from .ledger import close_submitters, create_reader
from .models import RequestOutcome, SubmitMode
from .orchestrator import BatchOrchestrator, Pipeline, summarize
from .store import ProofStore
from .version import __version__

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT)
    # substrate-interface logs every websocket frame at debug level
    logging.getLogger("substrateinterface").setLevel(logging.INFO if verbose else logging.WARNING)


def read_request_ids(ids: List[str], ids_file: Optional[str]) -> List[str]:
    """Request ids from arguments and an optional file, one id per line."""
    request_ids = list(ids)
    if ids_file:
        with open(ids_file, "r", encoding="utf-8") as f:
            for line in f:
                line = line.split("#", 1)[0].strip()
                if line:
                    request_ids.append(line)
    return request_ids


def echo_outcome(outcome: RequestOutcome) -> None:
    status = "OK" if outcome.error is None else "FAILED"
    parts = [f"{status:6} {outcome.request_id}",
             f"converted={'yes' if outcome.converted else 'no'}",
             f"submitted={'yes' if outcome.submitted else 'no'}"]
    if outcome.receipt is not None and outcome.receipt.extrinsic_hash:
        parts.append(f"tx={outcome.receipt.extrinsic_hash}")
    click.echo("  ".join(parts))
    if outcome.error:
        click.echo(f"       error: {outcome.error}", err=True)


@click.group()
@click.version_option(__version__, prog_name="proof-router")
@click.option("--verbose", "-v", is_flag=True, help="Log progress of every stage.")
@click.option("--demo", is_flag=True, help="Use synthetic artifacts and a simulated node.")
@click.option("--api-base", help="Override explorer API base URL.")
@click.option("--network", help="Named ledger network (see networks.json).")
@click.option("--ws-url", help="WebSocket URL of the Substrate node.")
@click.option("--env-file", type=click.Path(dir_okay=False), help="Load settings from this .env file.")
@click.pass_context
def cli(ctx, verbose, demo, api_base, network, ws_url, env_file):
    """Convert Succinct proof requests to zkVerify format and submit them."""
    configure_logging(verbose)
    try:
        ctx.obj = RouterConfig.from_env(
            dotenv_path=env_file,
            api_base=api_base,
            network=network,
            ws_url=ws_url,
            demo_mode=True if demo else None,
        )
    except ProofRouterError as e:
        raise click.ClickException(str(e))
    ctx.call_on_close(close_submitters)


@cli.command()
@click.option("--request-id", help="Proof request id; omit to submit an existing output file.")
@click.option("--output", default="proof.json", show_default=True, type=click.Path(dir_okay=False),
              help="Path of the converted proof JSON.")
@click.option("--send-remark", is_flag=True, help="Send the proof file as a system.remark transaction.")
@click.option("--submit-proof", "--submit-to-zkverify", "submit_proof", is_flag=True,
              help="Submit the proof to the settlement pallet.")
@click.pass_obj
def convert(config: RouterConfig, request_id, output, send_remark, submit_proof):
    """Fetch, convert and save one proof request, then optionally submit it."""
    if send_remark and submit_proof:
        raise click.UsageError("--send-remark and --submit-proof are mutually exclusive")
    mode = SubmitMode.REMARK if send_remark else SubmitMode.PROOF if submit_proof else SubmitMode.NONE

    if request_id is None and mode == SubmitMode.NONE:
        raise click.UsageError("Nothing to do: give --request-id and/or a submission flag")

    pipeline = Pipeline(config)
    try:
        if request_id is None:
            logger.info("No request_id provided, skipping proof conversion")
            try:
                receipt = asyncio.run(asyncio.wait_for(pipeline.submit_saved(output, mode),
                                                       timeout=config.submit_timeout))
            except asyncio.TimeoutError:
                raise click.ClickException(f"Submission timed out after {config.submit_timeout:g}s")
            except ProofRouterError as e:
                raise click.ClickException(f"{type(e).__name__}: {e}")
            if receipt.error:
                raise click.ClickException(f"Transaction {receipt.extrinsic_hash} failed: {receipt.error}")
            click.echo(f"Transaction hash: {receipt.extrinsic_hash}")
            return

        orchestrator = BatchOrchestrator(pipeline, submit_mode=mode)
        outcome = asyncio.run(orchestrator.process(request_id, output))
    finally:
        pipeline.close()

    if outcome.converted:
        click.echo(f"Proof converted successfully: {output}")
    if outcome.receipt is not None:
        click.echo(f"Transaction hash: {outcome.receipt.extrinsic_hash}")
    if outcome.error:
        raise click.ClickException(outcome.error)


@cli.command()
@click.argument("request_ids", nargs=-1)
@click.option("--ids-file", type=click.Path(exists=True, dir_okay=False),
              help="File with one request id per line.")
@click.option("--output-dir", default="proofs", show_default=True, type=click.Path(file_okay=False))
@click.option("--submit", "submit_mode", type=click.Choice([m.value for m in SubmitMode]),
              default=SubmitMode.NONE.value, show_default=True)
@click.option("--request-timeout", type=float, help="Seconds allowed per conversion.")
@click.option("--submit-timeout", type=float, help="Seconds allowed per submission.")
@click.option("--delay", type=float, help="Pause between requests in seconds.")
@click.pass_obj
def batch(config: RouterConfig, request_ids, ids_file, output_dir, submit_mode,
          request_timeout, submit_timeout, delay):
    """Process many proof requests one after another."""
    ids = read_request_ids(request_ids, ids_file)
    if not ids:
        raise click.UsageError("No request ids given")

    pipeline = Pipeline(config)
    orchestrator = BatchOrchestrator(
        pipeline,
        submit_mode=SubmitMode(submit_mode),
        per_request_timeout=request_timeout,
        submit_timeout=submit_timeout,
        inter_request_delay=delay,
    )
    try:
        outcomes = asyncio.run(orchestrator.run(ids, output_dir=output_dir))
    finally:
        pipeline.close()

    for outcome in outcomes:
        echo_outcome(outcome)
    counts = summarize(outcomes)
    click.echo(f"{counts['total']} requests: {counts['converted']} converted, "
               f"{counts['submitted']} submitted, {counts['failed']} failed")
    if counts["failed"]:
        raise click.exceptions.Exit(1)


@cli.command("list-pallets")
@click.pass_obj
def list_pallets(config: RouterConfig):
    """List the pallets of the configured node."""
    reader = create_reader(config)
    try:
        pallets = reader.list_pallets()
    except ProofRouterError as e:
        raise click.ClickException(str(e))
    finally:
        reader.close()
    for name in pallets:
        click.echo(name)


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def show(path):
    """Print the fields of a saved proof file."""
    try:
        proof = ProofStore().load(Path(path))
    except ProofRouterError as e:
        raise click.ClickException(str(e))
    click.echo(f"proof:      {len(proof.proof)} bytes")
    click.echo(f"pub_inputs: {len(proof.pub_inputs)} bytes")
    if proof.verification_key is None:
        click.echo("vk:         (none)")
    else:
        click.echo(f"vk:         0x{proof.verification_key.hex()}")


def main() -> None:
    cli(prog_name="proof-router")


if __name__ == "__main__":
    main()
