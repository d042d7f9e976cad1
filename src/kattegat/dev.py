"""Watch-and-replay loop for tuning fights.

Every change under the package (engine code or the JSON rule tables) reloads
the tables first; the scene is only replayed once they load cleanly, so a
broken table shows up as a rules error instead of a crashing fight.

    python -m kattegat.dev --scene duel --seed 3
"""

from __future__ import annotations

import argparse
import shlex
import signal
import subprocess
import sys
from functools import partial
from pathlib import Path
from typing import Iterable

from kattegat.engine.snapshot import SnapshotError, load_snapshot
from kattegat.rules.ruleset import DEFAULT_DATA_DIR, Ruleset, RulesError

PACKAGE_DIR = Path(__file__).resolve().parent
SCENES = ("broadside", "duel")
DEFAULT_SEED = 7
STOP_TIMEOUT = 2.0


def build_command(
    scene: str = "broadside",
    seed: int = DEFAULT_SEED,
    snapshot: Path | None = None,
    cmd: str | None = None,
) -> list[str]:
    if cmd is not None:
        return shlex.split(cmd)
    command = [sys.executable, "-m", "kattegat", scene, "--seed", str(seed)]
    if snapshot is not None:
        command += ["--snapshot", str(snapshot)]
    return command


def default_watch_paths(package_dir: Path = PACKAGE_DIR) -> list[Path]:
    """The package itself, plus the repo's tests when running from a checkout."""
    paths = [package_dir]
    tests = package_dir.parent.parent / "tests"
    if package_dir.parent.name == "src" and tests.is_dir():
        paths.append(tests)
    return paths


def check_inputs(data_dir: Path, snapshot: Path | None = None) -> str | None:
    """Load the rule tables (and snapshot); return the problem or None when both load."""
    try:
        Ruleset.load(data_dir)
        if snapshot is not None:
            load_snapshot(snapshot)
    except (RulesError, SnapshotError) as exc:
        return str(exc)
    return None


def describe_changes(changes: Iterable[tuple[object, str]]) -> str:
    names = sorted({Path(path).name for _change, path in changes})
    shown = ", ".join(names[:3])
    if len(names) > 3:
        shown += f" and {len(names) - 3} more"
    return shown


def _stop(proc: subprocess.Popen[object]) -> None:
    if proc.poll() is not None:
        return
    for step in (partial(proc.send_signal, signal.SIGINT), proc.terminate):
        try:
            step()
            proc.wait(timeout=STOP_TIMEOUT)
            return
        except (OSError, subprocess.TimeoutExpired):
            continue
    try:
        proc.kill()
    except OSError:
        pass


def _replay(cmd: list[str], data_dir: Path, snapshot: Path | None) -> subprocess.Popen[object] | None:
    problem = check_inputs(data_dir, snapshot)
    if problem is not None:
        print(f"[kattegat.dev] not replaying: {problem}", file=sys.stderr)
        return None
    return subprocess.Popen(cmd)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m kattegat.dev",
        description="Replay a seeded fight whenever the engine or its rule tables change.",
    )
    parser.add_argument("--scene", choices=SCENES, default="broadside")
    parser.add_argument("--seed", type=int, default=DEFAULT_SEED)
    parser.add_argument("--snapshot", type=Path, default=None, help="Game snapshot JSON to fight from.")
    parser.add_argument("--data-dir", type=Path, default=DEFAULT_DATA_DIR, help="Rule tables to validate.")
    parser.add_argument("--paths", nargs="*", default=None, help="Paths to watch (default: the package and tests/).")
    parser.add_argument("--cmd", default=None, help="Run this command instead of a scene.")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        from watchfiles import DefaultFilter, watch
    except ImportError:
        print(
            "Missing dependency: watchfiles\n"
            "Install with: pip install -e '.[dev]'\n"
            "Or:           pip install watchfiles",
            file=sys.stderr,
        )
        return 2

    watch_paths = [Path(p).resolve() for p in (args.paths or default_watch_paths())]
    if args.snapshot is not None:
        watch_paths.append(args.snapshot.resolve())
    watch_filter = DefaultFilter(
        ignore_dirs=["__pycache__", ".pytest_cache", ".hypothesis"],
        ignore_entity_patterns=["*.pyc", "*.pyo", "*.pyd"],
    )
    cmd = build_command(args.scene, args.seed, args.snapshot, args.cmd)

    proc = None
    try:
        proc = _replay(cmd, args.data_dir, args.snapshot)
        for changes in watch(*watch_paths, watch_filter=watch_filter):
            print(f"[kattegat.dev] changed: {describe_changes(changes)}", file=sys.stderr)
            if proc is not None:
                _stop(proc)
            proc = _replay(cmd, args.data_dir, args.snapshot)
    except KeyboardInterrupt:
        return 0
    finally:
        if proc is not None:
            _stop(proc)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
