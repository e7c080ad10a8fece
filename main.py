import asyncio
from typing import Any, Awaitable, Callable

import aiofiles
import click

from config import config
from drivers.driver_base_drv import StorageDriver
from drivers.driver_factory_drv import get_driver
from drivers.stream_drv import Range
from utils import errors_ut, logging_ut


def _run(ctx: click.Context, op: Callable[[StorageDriver], Awaitable[Any]]) -> Any:
    """Build the driver, run one async op, map errors to exit codes."""
    async def _go():
        driver = get_driver(ctx.obj["kind"], **ctx.obj["options"])
        return await op(driver)

    try:
        return asyncio.run(_go())
    except Exception as e:
        code, msg = errors_ut.translate_exception(e)
        click.echo(msg, err=True)
        ctx.exit(code)


@click.group(context_settings=dict(help_option_names=['-h', '--help']))
@click.version_option(config.VERSION, "-v", "--version", help="Show the version and exit.")
@click.option("--driver", "kind", type=click.Choice(["fs", "s3"]), default=None,
              help="Storage backend (default: DRIVER_KIND env).")
@click.option("--root", default=None, help="Root dir (fs) or key prefix (s3).")
@click.option("--bucket", default=None, help="Bucket name (s3 only).")
@click.option("--debug", is_flag=True, help="Debug logging.")
@click.pass_context
def cli(ctx: click.Context, kind, root, bucket, debug):
    """Uniform file operations over local disk and S3-compatible storage."""
    logging_ut.setup_logging("DEBUG" if debug else None)
    options = {"root": root}
    if bucket:
        options["bucket"] = bucket
    ctx.obj = {"kind": kind, "options": {k: v for k, v in options.items() if v is not None}}


@cli.command("ls")
@click.argument("prefix", default="")
@click.pass_context
def ls_cmd(ctx, prefix):
    """List files under PREFIX."""
    async def op(driver: StorageDriver):
        async for rel_path in driver.list(prefix):
            click.echo(rel_path)

    _run(ctx, op)


@cli.command("cat")
@click.argument("path")
@click.option("--start", type=int, default=None, help="First byte (inclusive).")
@click.option("--end", type=int, default=None, help="Last byte (inclusive).")
@click.pass_context
def cat_cmd(ctx, path, start, end):
    """Print file content (or a byte range) to stdout."""
    out = click.get_binary_stream("stdout")

    async def op(driver: StorageDriver):
        byte_range = Range(start, end) if start is not None or end is not None else None
        async with await driver.read(path, byte_range) as stream:
            async for chunk in stream:
                out.write(chunk)
        out.flush()

    _run(ctx, op)


@cli.command("get")
@click.argument("path")
@click.argument("dest", type=click.Path(dir_okay=False, writable=True))
@click.pass_context
def get_cmd(ctx, path, dest):
    """Download PATH to local file DEST."""
    async def op(driver: StorageDriver):
        async with await driver.read(path) as stream:
            async with aiofiles.open(dest, mode='wb') as f:
                async for chunk in stream:
                    await f.write(chunk)

    _run(ctx, op)


@cli.command("put")
@click.argument("src", type=click.Path(exists=True, dir_okay=False))
@click.argument("path")
@click.option("--content-type", default=None, help="Content type to store with the object.")
@click.pass_context
def put_cmd(ctx, src, path, content_type):
    """Upload local file SRC to PATH."""
    async def op(driver: StorageDriver):
        with open(src, 'rb') as f:
            await driver.write(path, f, content_type=content_type)

    _run(ctx, op)


@cli.command("stat")
@click.argument("path")
@click.pass_context
def stat_cmd(ctx, path):
    """Show size and modification time of PATH."""
    st = _run(ctx, lambda driver: driver.stat(path))
    click.echo(f"path:     {st.rel_path}")
    click.echo(f"size:     {st.size}")
    click.echo(f"modified: {st.modified.isoformat()}")
    if st.etag:
        click.echo(f"etag:     {st.etag}")
    if st.content_type:
        click.echo(f"type:     {st.content_type}")


@cli.command("exists")
@click.argument("path")
@click.pass_context
def exists_cmd(ctx, path):
    """Print true/false; exit code 1 when missing."""
    found = _run(ctx, lambda driver: driver.exists(path))
    click.echo("true" if found else "false")
    if not found:
        ctx.exit(1)


@cli.command("cp")
@click.argument("src")
@click.argument("dest")
@click.pass_context
def cp_cmd(ctx, src, dest):
    """Copy SRC to DEST (server side for s3)."""
    _run(ctx, lambda driver: driver.copy(src, dest))


@cli.command("mv")
@click.argument("src")
@click.argument("dest")
@click.pass_context
def mv_cmd(ctx, src, dest):
    """Move SRC to DEST. On s3 this is copy + delete, not atomic."""
    _run(ctx, lambda driver: driver.move(src, dest))


@cli.command("rm")
@click.argument("path")
@click.pass_context
def rm_cmd(ctx, path):
    """Delete PATH. Missing file is not an error."""
    _run(ctx, lambda driver: driver.delete(path))


def main():
    cli()


if __name__ == '__main__':
    main()
