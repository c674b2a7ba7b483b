"""Build, artifact generation and install steps behind ``slinky-package``.

Every step takes the loaded :class:`~slinky.models.PackageManifest` and the
project directory, performs its work with blocking :func:`subprocess.run`
calls or plain file copies, and raises a
:class:`~slinky.exceptions.PackagingError` subclass on failure:

* :func:`compile_binaries` -- optional locked dependency sync, then one
  PyInstaller run per executable (:class:`~slinky.exceptions.BuildError`).
* :func:`generate_artifacts` -- completion scripts and man pages produced by
  the freshly compiled ``slinky`` executable
  (:class:`~slinky.exceptions.BuildError`).
* :func:`plan_install` / :func:`install` -- copy executables, completions
  and man pages into a destination root
  (:class:`~slinky.exceptions.InstallError`).
* :func:`verify_install` -- check an installed tree against the plan
  (callers raise :class:`~slinky.exceptions.VerificationError`).
* :func:`render_pkgbuild` -- render the manifest as a ``PKGBUILD``.

With ``dry_run`` set, commands and copies are described but not performed.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import stat
import subprocess
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from slinky.exceptions import BuildError, InstallError
from slinky.models import InstallEntry, PackageManifest, Shell
from slinky.output import debug, info, success

logger = logging.getLogger(__name__)


TEMPLATE_DIR = Path(__file__).parent / "templates"
"""Path to the Jinja2 template directory (``plugins/build/templates/``)."""

ENTRY_MODULES: dict[str, str] = {
    "slinky": "slinky.app",
    "slinky-ln": "slinky.ln",
}
"""Executable name -> module whose ``main()`` the compiled binary runs."""

COMPLETION_FILENAMES: dict[Shell, str] = {
    Shell.BASH: "{name}.bash",
    Shell.ZSH: "_{name}",
    Shell.FISH: "{name}.fish",
}
"""Generated completion script names inside ``generate_dir``."""

MAN_FILENAME = "{name}.1"

_PYINSTALLER_RELEASE_FLAGS = ["--onefile", "--clean", "--noconfirm", "--strip"]

_ENTRY_TEMPLATE = '''\
"""Entry point for the {binary} executable."""

from {module} import main

if __name__ == "__main__":
    main()
'''


def _describe(args: list[str]) -> str:
    return " ".join(shlex.quote(str(a)) for a in args)


# --- compile ---


def check_pyinstaller() -> bool:
    """Check whether PyInstaller is importable by the current interpreter.

    Spawns a subprocess to attempt ``import PyInstaller`` so the check does
    not load it into this process.
    """
    try:
        result = subprocess.run(
            [sys.executable, "-c", "import PyInstaller"],
            capture_output=True,
            timeout=10,
        )
    except (OSError, subprocess.TimeoutExpired):
        return False
    return result.returncode == 0


def sync_locked_dependencies(
    manifest: PackageManifest, project_dir: Path, dry_run: bool = False
) -> None:
    """Install the exact, hash-verified dependency set from the lockfile.

    Raises:
        BuildError: If no lockfile is configured or present, or pip fails.
    """
    if not manifest.build.lockfile:
        raise BuildError("Locked build requested but the manifest names no lockfile")
    lockfile = project_dir / manifest.build.lockfile
    if not lockfile.is_file():
        raise BuildError(
            f"Lockfile not found: {lockfile}. Build with --no-locked to skip dependency sync."
        )

    args = [
        sys.executable, "-m", "pip", "install",
        "--require-hashes", "--no-deps", "-r", str(lockfile),
    ]
    if dry_run:
        info(f"Would run: {_describe(args)}")
        return

    debug(f"Running: {_describe(args)}")
    try:
        result = subprocess.run(args, capture_output=True, text=True, timeout=manifest.build.timeout)
    except subprocess.TimeoutExpired as exc:
        raise BuildError(f"Dependency sync timed out after {manifest.build.timeout}s") from exc
    if result.returncode != 0:
        logger.debug("pip stderr:\n%s", result.stderr)
        tail = "\n".join(result.stderr.splitlines()[-20:])
        raise BuildError(f"Dependency sync from {lockfile} failed:\n{tail}")


def write_entry_script(binary: str, work_dir: Path) -> Path:
    """Write the tiny script PyInstaller freezes for *binary*.

    Raises:
        BuildError: If *binary* has no known entry module.
    """
    module = ENTRY_MODULES.get(binary)
    if module is None:
        raise BuildError(
            f"No entry point known for executable '{binary}'. "
            f"Known: {', '.join(ENTRY_MODULES)}"
        )
    entry = work_dir / f"{binary.replace('-', '_')}_entry.py"
    entry.write_text(_ENTRY_TEMPLATE.format(binary=binary, module=module), encoding="utf-8")
    return entry


def pyinstaller_command(binary: str, entry: Path, dist_dir: Path, work_dir: Path) -> list[str]:
    """Build the PyInstaller argument list for one executable."""
    return [
        sys.executable, "-m", "PyInstaller",
        *_PYINSTALLER_RELEASE_FLAGS,
        "--name", binary,
        "--distpath", str(dist_dir),
        "--workpath", str(work_dir / "build"),
        "--specpath", str(work_dir),
        "--collect-submodules", "slinky",
        "--collect-data", "slinky",
        str(entry),
    ]


def compile_binaries(
    manifest: PackageManifest,
    project_dir: Path,
    locked: bool = True,
    dry_run: bool = False,
) -> list[Path]:
    """Compile every executable in the manifest into ``dist_dir``.

    Returns:
        The paths of the compiled executables.

    Raises:
        BuildError: On a missing lockfile, missing PyInstaller, a failed or
            timed-out PyInstaller run, or a missing output executable.
    """
    dist_dir = project_dir / manifest.build.dist_dir
    if locked:
        sync_locked_dependencies(manifest, project_dir, dry_run=dry_run)

    if not dry_run and not check_pyinstaller():
        raise BuildError("PyInstaller is not installed. Install it: pip install pyinstaller")

    built: list[Path] = []
    with tempfile.TemporaryDirectory(prefix="slinky-build-") as tmp:
        work_dir = Path(tmp)
        for binary in manifest.binaries:
            entry = write_entry_script(binary, work_dir)
            args = pyinstaller_command(binary, entry, dist_dir, work_dir)
            binary_path = dist_dir / binary
            if dry_run:
                info(f"Would run: {_describe(args)}")
                built.append(binary_path)
                continue

            info(f"Compiling {binary}...")
            debug(f"Running: {_describe(args)}")
            try:
                result = subprocess.run(
                    args,
                    capture_output=True,
                    text=True,
                    timeout=manifest.build.timeout,
                )
            except subprocess.TimeoutExpired as exc:
                raise BuildError(
                    f"Build of {binary} timed out after {manifest.build.timeout}s"
                ) from exc
            except FileNotFoundError as exc:
                raise BuildError("Python interpreter for PyInstaller not found") from exc

            if result.returncode != 0:
                logger.debug("PyInstaller stderr:\n%s", result.stderr)
                tail = "\n".join(result.stderr.splitlines()[-20:])
                raise BuildError(f"PyInstaller build of {binary} failed:\n{tail}")

            if not binary_path.is_file():
                raise BuildError(f"Expected executable not found at: {binary_path}")

            size_mb = binary_path.stat().st_size / (1024 * 1024)
            success(f"Built: {binary_path} ({size_mb:.1f} MB)")
            built.append(binary_path)
    return built


# --- artifacts ---


def _run_generator(executable: Path, args: list[str], dry_run: bool) -> Optional[str]:
    command = [str(executable), *args]
    if dry_run:
        info(f"Would run: {_describe(command)}")
        return None
    debug(f"Running: {_describe(command)}")
    try:
        result = subprocess.run(command, capture_output=True, text=True, timeout=60)
    except (OSError, subprocess.TimeoutExpired) as exc:
        raise BuildError(f"Failed to run {executable}: {exc}") from exc
    if result.returncode != 0:
        raise BuildError(
            f"'{_describe(command)}' exited with status {result.returncode}: "
            f"{result.stderr.strip()}"
        )
    if not result.stdout.strip():
        raise BuildError(f"'{_describe(command)}' produced no output")
    return result.stdout


def generate_artifacts(
    manifest: PackageManifest, project_dir: Path, dry_run: bool = False
) -> list[Path]:
    """Write completion scripts and man pages for every executable.

    The compiled primary executable (``dist_dir/<name>``) generates all of
    them, including those for the other executables, through
    ``generate completions <shell> --command <binary>`` and
    ``generate man --command <binary>``.

    Returns:
        The paths written (or that would be written on a dry run).

    Raises:
        BuildError: If the executable is missing or any invocation fails or
            prints nothing.
    """
    executable = project_dir / manifest.build.dist_dir / manifest.name
    if not dry_run and not executable.is_file():
        raise BuildError(f"Executable not found: {executable}. Run 'slinky-package compile' first.")

    out_dir = project_dir / manifest.build.generate_dir
    if not dry_run:
        out_dir.mkdir(parents=True, exist_ok=True)

    written: list[Path] = []
    for binary in manifest.binaries:
        jobs: list[tuple[list[str], Path]] = [
            (
                ["generate", "completions", shell.value, "--command", binary],
                out_dir / pattern.format(name=binary),
            )
            for shell, pattern in COMPLETION_FILENAMES.items()
        ]
        jobs.append((["generate", "man", "--command", binary], out_dir / MAN_FILENAME.format(name=binary)))

        for args, destination in jobs:
            output = _run_generator(executable, args, dry_run)
            if output is not None:
                destination.write_text(output, encoding="utf-8")
                debug(f"Wrote {destination}")
            written.append(destination)
    return written


# --- install ---


def plan_install(
    manifest: PackageManifest, project_dir: Path, destdir: Path
) -> list[InstallEntry]:
    """List every file copy needed to install the package under *destdir*."""
    dist_dir = project_dir / manifest.build.dist_dir
    gen_dir = project_dir / manifest.build.generate_dir
    share = destdir / "usr" / "share"

    plan: list[InstallEntry] = []
    for name in manifest.binaries:
        plan.extend([
            InstallEntry(source=dist_dir / name, destination=destdir / "usr" / "bin" / name, mode=0o755),
            InstallEntry(
                source=gen_dir / COMPLETION_FILENAMES[Shell.BASH].format(name=name),
                destination=share / "bash-completion" / "completions" / name,
                mode=0o644,
            ),
            InstallEntry(
                source=gen_dir / COMPLETION_FILENAMES[Shell.ZSH].format(name=name),
                destination=share / "zsh" / "site-functions" / f"_{name}",
                mode=0o644,
            ),
            InstallEntry(
                source=gen_dir / COMPLETION_FILENAMES[Shell.FISH].format(name=name),
                destination=share / "fish" / "vendor_completions.d" / f"{name}.fish",
                mode=0o644,
            ),
            InstallEntry(
                source=gen_dir / MAN_FILENAME.format(name=name),
                destination=share / "man" / "man1" / f"{name}.1",
                mode=0o644,
            ),
        ])
    return plan


def install(plan: list[InstallEntry], dry_run: bool = False) -> None:
    """Copy every planned file into place and set its mode.

    All sources are checked before anything is copied.

    Raises:
        InstallError: If any source is missing or a copy fails.
    """
    missing = [entry.source for entry in plan if not entry.source.is_file()]
    if missing and not dry_run:
        listing = "\n".join(f"  {path}" for path in missing)
        raise InstallError(f"Missing build outputs:\n{listing}")

    for entry in plan:
        if dry_run:
            info(f"Would install {entry.source} -> {entry.destination} ({entry.mode_str})")
            continue
        try:
            entry.destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(entry.source, entry.destination)
            os.chmod(entry.destination, entry.mode)
        except OSError as exc:
            raise InstallError(f"Failed to install {entry.destination}: {exc}") from exc
        debug(f"Installed {entry.destination} ({entry.mode_str})")


# --- verify ---


@dataclass(frozen=True)
class VerifyResult:
    """Outcome of checking one installed file."""

    entry: InstallEntry
    actual_mode: Optional[int]

    @property
    def ok(self) -> bool:
        return self.actual_mode == self.entry.mode

    @property
    def status(self) -> str:
        if self.actual_mode is None:
            return "missing"
        return "ok" if self.ok else "wrong mode"

    @property
    def actual_mode_str(self) -> str:
        return "-" if self.actual_mode is None else f"{self.actual_mode:04o}"


def verify_install(plan: list[InstallEntry]) -> list[VerifyResult]:
    """Check that every planned destination exists as a file with its mode."""
    results = []
    for entry in plan:
        if entry.destination.is_file():
            actual: Optional[int] = stat.S_IMODE(entry.destination.stat().st_mode)
        else:
            actual = None
        results.append(VerifyResult(entry=entry, actual_mode=actual))
    return results


# --- PKGBUILD ---


def _bash_array(values: list[str]) -> str:
    return "(" + " ".join(shlex.quote(v) for v in values) + ")"


def _create_jinja_env() -> Environment:
    """Create the Jinja2 environment for packaging templates."""
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=select_autoescape(disabled_extensions=("j2",)),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters["bash_array"] = _bash_array
    env.filters["shquote"] = shlex.quote
    return env


def render_pkgbuild(manifest: PackageManifest) -> str:
    """Render *manifest* as an Arch Linux ``PKGBUILD``."""
    template = _create_jinja_env().get_template("PKGBUILD.j2")
    return template.render(manifest=manifest)
