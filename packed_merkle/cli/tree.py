"""
CLI commands for packed Merkle tree operations.

Provides commands for:
- Building a tree and checking its consistency
- Printing and verifying the inclusion path of a payload
- Filling a reserved replica from partial peers
"""

import json
import sys
from typing import List, Optional, Tuple

import click

from packed_merkle.cli.context import CLIContext, pass_context
from packed_merkle.exceptions import PackedMerkleError
from packed_merkle.logging_config import clear_correlation_id, get_logger, set_correlation_id
from packed_merkle.merkle.bundle import reconcile, transfer
from packed_merkle.merkle.tree import PackedMerkleTree

logger = get_logger(__name__)


def _collect_payloads(payloads: Tuple[str, ...], payload_file) -> List[bytes]:
    """Payloads from the command line, then one per line from the file."""
    collected = [p.encode("utf-8") for p in payloads]
    if payload_file is not None:
        collected.extend(
            line.rstrip("\n").encode("utf-8") for line in payload_file if line.strip()
        )
    return collected


def _build(cli_ctx: CLIContext, payloads: Tuple[str, ...], payload_file) -> PackedMerkleTree:
    collected = _collect_payloads(payloads, payload_file)
    if not collected:
        click.echo("Error: No payloads given", err=True)
        sys.exit(1)
    return PackedMerkleTree.from_leaves(collected, hasher=cli_ctx.hasher)


_payload_file_option = click.option(
    '--file',
    '-i',
    'payload_file',
    type=click.File('r'),
    default=None,
    help='Read additional payloads from a file, one per line',
)

_format_option = click.option(
    '--format',
    '-f',
    type=click.Choice(['table', 'json'], case_sensitive=False),
    default='table',
    help='Output format (default: table)',
)


@click.command('build')
@click.argument('payloads', nargs=-1)
@_payload_file_option
@_format_option
@pass_context
def build(cli_ctx: CLIContext, payloads: Tuple[str, ...], payload_file, format: str):
    """
    Build a tree from payloads and verify it.

    Examples:

        packed-merkle build tx1 tx2 tx3 tx4 tx5 tx6 tx7

        packed-merkle build --file transactions.txt --format json
    """
    tree = _build(cli_ctx, payloads, payload_file)
    verified = tree.verify_tree()

    if format.lower() == 'json':
        output = tree.snapshot().to_dict()
        output["verified"] = verified
        click.echo(json.dumps(output, indent=2))
        return

    click.echo(f"Hash algorithm: {tree.hasher.algorithm}")
    click.echo(f"Leaves: {tree.leaves}")
    click.echo(f"Nodes: {tree.total}")
    click.echo(f"Root: {tree.root.hex()}")
    click.echo()

    first_leaf = tree.total - tree.leaves
    header = f"{'Slot':<6}  {'Kind':<8}  Digest"
    click.echo(header)
    click.echo("-" * (len(header) - len("Digest") + 2 * tree.hasher.digest_size))
    for slot, digest in enumerate(tree.tree):
        kind = "leaf" if slot >= first_leaf else "node"
        click.echo(f"{slot:<6}  {kind:<8}  {digest.hex()}")

    click.echo()
    click.echo(f"Verification passed? {verified}")

    if not verified:
        sys.exit(1)


@click.command('path')
@click.argument('target')
@click.argument('payloads', nargs=-1)
@_payload_file_option
@_format_option
@pass_context
def path(cli_ctx: CLIContext, target: str, payloads: Tuple[str, ...], payload_file, format: str):
    """
    Print the inclusion path of TARGET in the tree built from PAYLOADS.

    Example:

        packed-merkle path tx3 tx1 tx2 tx3 tx4 tx5 tx6 tx7
    """
    tree = _build(cli_ctx, payloads, payload_file)
    key = tree.hasher.leaf_hash(target)
    nodes = tree.path(key)

    if nodes is None:
        click.echo(f"Error: '{target}' is not a leaf of this tree", err=True)
        sys.exit(1)

    verified = tree.verify_path(key, nodes)

    if format.lower() == 'json':
        output = {
            "target": target,
            "leaf_digest": key.hex(),
            "root": tree.root.hex(),
            "path": [{"side": n.side.value, "digest": n.digest.hex()} for n in nodes],
            "verified": verified,
        }
        click.echo(json.dumps(output, indent=2))
        return

    click.echo(f"Leaf digest: {key.hex()}")
    click.echo(f"Root: {tree.root.hex()}")
    click.echo(f"Path length: {len(nodes)}")
    click.echo()
    for step, node in enumerate(nodes):
        click.echo(f"  {step:<3} {node.side.value:<5}  {node.digest.hex()}")
    click.echo()
    click.echo(f"Verification passed? {verified}")


@click.command('sync')
@click.argument('payloads', nargs=-1)
@_payload_file_option
@click.option(
    '--peers',
    '-p',
    type=click.IntRange(min=1),
    default=2,
    help='Number of partial replicas to split the leaves across (default: 2)',
)
@pass_context
def sync(cli_ctx: CLIContext, payloads: Tuple[str, ...], payload_file, peers: int):
    """
    Split a tree across partial replicas and reconcile a fresh one from them.

    Each peer is reserved from the source root and receives every
    PEERS-th leaf. A new replica is then filled from the peers alone.

    Example:

        packed-merkle sync tx1 tx2 tx3 tx4 tx5 --peers 3
    """
    source = _build(cli_ctx, payloads, payload_file)
    max_path_length: Optional[int] = cli_ctx.config.reconciliation.max_path_length

    correlation_id = set_correlation_id()
    try:
        partials = [
            PackedMerkleTree.reserve(source.root, source.leaves, hasher=source.hasher)
            for _ in range(peers)
        ]
        for ordinal in range(source.leaves):
            transfer(source, partials[ordinal % peers], ordinal, max_path_length=max_path_length)

        replica = PackedMerkleTree.reserve(source.root, source.leaves, hasher=source.hasher)
        result = reconcile(replica, partials, max_path_length=max_path_length)
    except PackedMerkleError as e:
        click.echo(f"Error: {e}", err=True)
        logger.error("sync_failed", error=str(e))
        sys.exit(1)
    finally:
        clear_correlation_id()

    click.echo(f"Session: {correlation_id}")
    click.echo(f"Root: {source.root.hex()}")
    for index, partial in enumerate(partials):
        click.echo(f"  Peer {index}: {len(partial.data)} leaves held")
    click.echo(f"Transferred: {len(result.transferred)}/{replica.leaves}")
    if result.missing_ordinals:
        click.echo(f"Missing ordinals: {result.missing_ordinals}")
    click.echo(f"Replica complete? {replica.is_complete}")
    click.echo(f"Verification passed? {replica.verify_tree()}")

    if not result.complete:
        sys.exit(1)
