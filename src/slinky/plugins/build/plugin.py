"""Packaging plugin -- the ``slinky-package`` command line.

Turns the project into an installable package in three steps, each also
available on its own:

* **compile** -- Sync dependencies from the hash-pinned lockfile (unless
  ``--no-locked``) and compile ``slinky`` and ``slinky-ln`` into standalone
  executables with PyInstaller.
* **artifacts** -- Run the compiled ``slinky`` to generate completion
  scripts (bash, zsh, fish) and man pages for both executables.
* **install** -- Copy executables, completions and man pages into
  ``--destdir`` with the standard Linux layout and permissions.

``init`` writes a starter ``slinky-package.json``. ``all`` runs the three
steps in order. ``verify`` checks an installed tree and
``pkgbuild`` writes an Arch Linux ``PKGBUILD`` that drives the same steps.

Usage::

    slinky-package init --name slinky --pkg-version 0.2.0
    slinky-package all --destdir /tmp/stage
    slinky-package --manifest packaging/slinky-package.json compile --no-locked
    slinky-package install --destdir "$pkgdir"
    slinky-package verify --destdir /tmp/stage
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn, Optional

import typer

from slinky import __version__
from slinky.exceptions import ConfigError, SlinkyError, VerificationError
from slinky.models import ColorChoice, PackageManifest
from slinky.output import (
    OutputManager,
    error,
    info,
    print_data,
    print_table,
    set_output,
    success,
    suggest,
)
from slinky.plugins.build import pipeline


build_app = typer.Typer(
    name="slinky-package",
    help="Build, document and install slinky as a distributable package.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

_DESTDIR_OPTION = typer.Option(
    Path("/"),
    "--destdir",
    "-d",
    envvar="SLINKY_DESTDIR",
    help="Root directory to install into.",
)


@dataclass
class PackageContext:
    """State shared by every ``slinky-package`` command."""

    manifest: PackageManifest
    manifest_path: Path
    project_dir: Path
    verbose: bool = False
    dry_run: bool = False


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"slinky-package {__version__}")
        raise typer.Exit()


def _fail(exc: SlinkyError) -> NoReturn:
    error(str(exc))
    raise typer.Exit(code=exc.exit_code)


@build_app.callback()
def main_callback(
    ctx: typer.Context,
    manifest: Optional[Path] = typer.Option(
        None, "--manifest", "-m",
        help="Package manifest. Defaults to ./slinky-package.json, or built-in defaults when absent.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show every command that runs."),
    dry_run: bool = typer.Option(
        False, "--dry-run", "-n", help="Describe the steps without running them."
    ),
    color: Optional[ColorChoice] = typer.Option(
        None, "--color", case_sensitive=False, help="Control color output."
    ),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Build, document and install slinky as a distributable package."""
    from slinky.config import MANIFEST_FILENAME, load_manifest, resolve_config

    set_output(OutputManager(color=color or ColorChoice.AUTO, verbose=verbose))
    try:
        config = resolve_config(color)
        set_output(OutputManager(color=config.color, verbose=verbose))
        # init creates the manifest
        loaded = PackageManifest() if ctx.invoked_subcommand == "init" else load_manifest(manifest)
    except SlinkyError as exc:
        _fail(exc)

    manifest_path = manifest if manifest is not None else Path.cwd() / MANIFEST_FILENAME
    ctx.ensure_object(dict)
    ctx.obj["package"] = PackageContext(
        manifest=loaded,
        manifest_path=manifest_path,
        project_dir=manifest.resolve().parent if manifest is not None else Path.cwd(),
        verbose=verbose,
        dry_run=dry_run,
    )


def _package(ctx: typer.Context) -> PackageContext:
    return ctx.obj["package"]


def _compile(pkg: PackageContext, locked: bool) -> None:
    pipeline.compile_binaries(pkg.manifest, pkg.project_dir, locked=locked, dry_run=pkg.dry_run)


def _artifacts(pkg: PackageContext) -> None:
    written = pipeline.generate_artifacts(pkg.manifest, pkg.project_dir, dry_run=pkg.dry_run)
    if not pkg.dry_run:
        success(f"Generated {len(written)} artifacts in {pkg.project_dir / pkg.manifest.build.generate_dir}")


def _install(pkg: PackageContext, destdir: Path) -> None:
    plan = pipeline.plan_install(pkg.manifest, pkg.project_dir, destdir)
    pipeline.install(plan, dry_run=pkg.dry_run)
    if not pkg.dry_run:
        success(f"Installed {len(plan)} files into {destdir}")


@build_app.command("init")
def init_command(
    ctx: typer.Context,
    name: Optional[str] = typer.Option(None, "--name", help="Package and primary executable name."),
    pkg_version: Optional[str] = typer.Option(None, "--pkg-version", help="Package version."),
    url: Optional[str] = typer.Option(None, "--url", help="Project homepage."),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing manifest."),
) -> None:
    """Write a starter manifest with the built-in defaults."""
    from slinky.config import save_manifest

    pkg = _package(ctx)
    path = pkg.manifest_path
    if path.exists() and not force:
        _fail(ConfigError(f"Manifest already exists: {path} (use --force to overwrite)"))

    overrides = {"name": name, "version": pkg_version, "url": url}
    manifest = pkg.manifest.model_copy(
        update={key: value for key, value in overrides.items() if value is not None}
    )
    if pkg.dry_run:
        info(f"Would write {path}")
        return
    save_manifest(manifest, path)
    success(f"Wrote {path}")
    suggest("Build and stage the package: slinky-package all --destdir ./stage")


@build_app.command("compile")
def compile_command(
    ctx: typer.Context,
    locked: bool = typer.Option(
        True, "--locked/--no-locked",
        help="Sync dependencies from the hash-pinned lockfile before compiling.",
    ),
) -> None:
    """Compile the executables with PyInstaller."""
    try:
        _compile(_package(ctx), locked)
    except SlinkyError as exc:
        _fail(exc)


@build_app.command("artifacts")
def artifacts_command(ctx: typer.Context) -> None:
    """Generate completion scripts and man pages with the compiled executable."""
    try:
        _artifacts(_package(ctx))
    except SlinkyError as exc:
        _fail(exc)


@build_app.command("install")
def install_command(ctx: typer.Context, destdir: Path = _DESTDIR_OPTION) -> None:
    """Install executables, completions and man pages under DESTDIR."""
    try:
        _install(_package(ctx), destdir)
    except SlinkyError as exc:
        _fail(exc)


@build_app.command("all")
def all_command(
    ctx: typer.Context,
    destdir: Path = _DESTDIR_OPTION,
    locked: bool = typer.Option(True, "--locked/--no-locked", help="Sync from the lockfile first."),
) -> None:
    """Compile, generate artifacts and install, stopping at the first failure."""
    pkg = _package(ctx)
    try:
        _compile(pkg, locked)
        _artifacts(pkg)
        _install(pkg, destdir)
    except SlinkyError as exc:
        _fail(exc)


@build_app.command("verify")
def verify_command(ctx: typer.Context, destdir: Path = _DESTDIR_OPTION) -> None:
    """Check that every installed file exists with the expected mode."""
    pkg = _package(ctx)
    plan = pipeline.plan_install(pkg.manifest, pkg.project_dir, destdir)
    results = pipeline.verify_install(plan)
    print_table(
        ["Path", "Expected", "Actual", "Status"],
        [
            [str(r.entry.destination), r.entry.mode_str, r.actual_mode_str, r.status]
            for r in results
        ],
        title=f"Installed files under {destdir}",
    )
    failed = [r for r in results if not r.ok]
    if failed:
        _fail(VerificationError(f"{len(failed)} of {len(results)} installed files failed verification"))
    success(f"All {len(results)} installed files verified")


@build_app.command("pkgbuild")
def pkgbuild_command(
    ctx: typer.Context,
    output: str = typer.Option(
        "PKGBUILD", "--output", "-o", help="Where to write the PKGBUILD. Use '-' for stdout."
    ),
) -> None:
    """Render the manifest as an Arch Linux PKGBUILD."""
    pkg = _package(ctx)
    text = pipeline.render_pkgbuild(pkg.manifest)
    if output == "-":
        print_data(text.rstrip("\n"))
        return
    target = Path(output)
    if pkg.dry_run:
        info(f"Would write {target}")
        return
    target.write_text(text, encoding="utf-8")
    success(f"Wrote {target}")


def main() -> None:
    """CLI entry point invoked by the ``slinky-package`` console script."""
    from slinky.app import run_app

    run_app(build_app, "slinky-package")
