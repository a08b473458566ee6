"""
Command-line interface for surtur.

This module provides the `surtur` CLI tool for creating, building, running
and testing C projects.
"""

import argparse
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from surtur import __version__
from surtur.build import BuildMode, BuildOrchestrator, BuildTarget
from surtur.cli_utils import CommandSuggester, ErrorFormatter, PathValidator, setup_logging
from surtur.config import Dependency, ProjectConfig, Settings, load
from surtur.creator import ProjectCreator
from surtur.packages import DependencyResolver
from surtur.run import Runner, TestRunner

COMMANDS = ("new", "init", "build", "run", "test", "add", "remove", "deps")


@dataclass
class NewArgs:
    """Arguments for the new and init commands."""

    project_dir: Path
    name: Optional[str] = None
    lib: bool = False
    verbose: bool = False


@dataclass
class BuildArgs:
    """Arguments for the build command."""

    project_dir: Path
    mode: BuildMode = BuildMode.DEBUG
    target: BuildTarget = BuildTarget.EXECUTABLE
    verbose: bool = False


@dataclass
class RunArgs:
    """Arguments for the run command."""

    project_dir: Path
    mode: BuildMode = BuildMode.DEBUG
    program_args: List[str] = field(default_factory=list)
    verbose: bool = False


@dataclass
class TestArgs:
    """Arguments for the test command."""

    __test__ = False

    project_dir: Path
    name: Optional[str] = None
    mode: BuildMode = BuildMode.DEBUG
    verbose: bool = False


@dataclass
class DependencyArgs:
    """Arguments for the add, remove and deps commands."""

    project_dir: Path
    name: Optional[str] = None
    url: Optional[str] = None
    version: Optional[str] = None
    verbose: bool = False


def _load_project(project_dir: Path) -> Tuple[ProjectConfig, Settings]:
    return load(project_dir), Settings.from_env(project_dir)


def new_command(args: NewArgs) -> None:
    """Create a new project directory.

    Examples:
        surtur new hello              # Executable project in ./hello
        surtur new mathlib --lib      # Library project
    """
    try:
        root = ProjectCreator().create(args.project_dir, args.name, lib=args.lib)
        ErrorFormatter.print_success(f"Created project '{args.name}'")
        print(f"Location: {root}")
        sys.exit(0)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_error(e, args.verbose)


def init_command(args: NewArgs) -> None:
    """Turn the project directory into a surtur project."""
    try:
        root = ProjectCreator().init(args.project_dir, lib=args.lib)
        ErrorFormatter.print_success(f"Initialized project '{root.name}'")
        sys.exit(0)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_error(e, args.verbose)


def build_command(args: BuildArgs) -> None:
    """Build the project.

    Examples:
        surtur build                   # Debug executable
        surtur build --release         # Optimized, stripped executable
        surtur build --obj             # Object files only
        surtur build --asm --release   # Optimized assembly listings
    """
    print(f"Surtur Build System v{__version__}")
    print()

    try:
        config, settings = _load_project(args.project_dir)

        if args.verbose:
            print(f"Building project: {config.name} ({args.project_dir})")
            print(f"Standard: {config.standard.value}")
            print()
        else:
            print(f"Building {config.name} ({args.mode.value})...")

        orchestrator = BuildOrchestrator(config, settings, verbose=args.verbose)
        result = orchestrator.build(target=args.target, mode=args.mode)

        if result.warnings:
            sys.stderr.write(result.warnings)

        ErrorFormatter.print_success("Build successful!")
        print()
        if len(result.artifacts) == 1:
            print(f"Artifact: {result.artifact_path}")
        else:
            print(f"Artifacts ({len(result.artifacts)}) in {result.artifact_path}")
        print(f"Build time: {result.build_time:.2f}s")
        sys.exit(0)

    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_error(e, args.verbose)


def run_command(args: RunArgs) -> None:
    """Build the project and run the executable.

    The exit code is the program's own exit code.

    Examples:
        surtur run
        surtur run --release -- input.txt --flag
    """
    try:
        config, settings = _load_project(args.project_dir)
        orchestrator = BuildOrchestrator(config, settings, verbose=args.verbose)
        result = orchestrator.build(target=BuildTarget.EXECUTABLE, mode=args.mode)

        if result.warnings:
            sys.stderr.write(result.warnings)
        sys.stdout.flush()

        outcome = Runner().run(result, args.program_args, capture=False)
        sys.exit(outcome.returncode)

    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_error(e, args.verbose)


def test_command(args: TestArgs) -> None:
    """Build and run the programs under tests/.

    Examples:
        surtur test                    # All tests
        surtur test parser             # tests/parser.c only
        surtur test "str*"             # Tests matching a pattern
    """
    try:
        config, settings = _load_project(args.project_dir)
        orchestrator = BuildOrchestrator(config, settings, verbose=args.verbose)
        report = TestRunner(orchestrator).run_tests(args.name or "*", mode=args.mode)

        if not report.results:
            pattern = args.name or "*"
            ErrorFormatter.print_warning(f"No tests matching '{pattern}' in {settings.tests_dir}")
            sys.exit(1 if args.name else 0)

        for test in report.results:
            if test.passed:
                print(f"  PASS  {test.name}")
                continue
            if test.error is not None:
                print(f"  FAIL  {test.name} (build: {test.error})")
                diagnostic = getattr(test.error, "diagnostic", "")
                if diagnostic:
                    print(diagnostic.rstrip())
            else:
                print(f"  FAIL  {test.name} (exit code {test.outcome.returncode})")
                output = (test.outcome.stdout + test.outcome.stderr).rstrip()
                if output:
                    print(output)

        if report.success:
            ErrorFormatter.print_success(f"{report.passed} tests passed")
            sys.exit(0)
        else:
            ErrorFormatter.print_error(
                "Tests failed!", f"{report.failed} of {len(report.results)} tests failed"
            )
            sys.exit(1)

    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_error(e, args.verbose)


def add_command(args: DependencyArgs) -> None:
    """Declare a dependency in project.ini.

    Examples:
        surtur add cjson https://github.com/DaveGamble/cJSON --version v1.7.18
        surtur add mini https://example.com/mini-1.0.tar.gz
    """
    try:
        config = load(args.project_dir)
        try:
            dependency = Dependency(args.name, args.url, args.version)
        except ValueError as e:
            ErrorFormatter.print_error("Error: Invalid dependency", str(e))
            sys.exit(1)

        replaced = config.get_dependency(args.name) is not None
        config.with_dependency(dependency).save(args.project_dir)

        verb = "Updated" if replaced else "Added"
        ErrorFormatter.print_success(f"{verb} dependency '{args.name}'")
        print("Run 'surtur deps' to fetch it now, or build to fetch on demand.")
        sys.exit(0)

    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_error(e, args.verbose)


def remove_command(args: DependencyArgs) -> None:
    """Remove a dependency from project.ini and from the cache."""
    try:
        config, settings = _load_project(args.project_dir)
        if config.get_dependency(args.name) is None:
            ErrorFormatter.print_error(
                "Error: Unknown dependency", f"'{args.name}' is not declared in project.ini"
            )
            sys.exit(1)

        config.without_dependency(args.name).save(args.project_dir)
        removed = DependencyResolver.from_settings(settings).remove(args.name)

        ErrorFormatter.print_success(f"Removed dependency '{args.name}'")
        for path in removed:
            print(f"Deleted cache entry: {path}")
        sys.exit(0)

    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_error(e, args.verbose)


def deps_command(args: DependencyArgs) -> None:
    """Fetch every declared dependency into the cache without building."""
    try:
        config, settings = _load_project(args.project_dir)
        if not config.dependencies:
            print("No dependencies declared.")
            sys.exit(0)

        resolver = DependencyResolver.from_settings(settings, show_progress=True)
        entries = resolver.resolve(config.dependencies)

        ErrorFormatter.print_success(f"{len(entries)} dependencies ready")
        for identifier in sorted(entries):
            print(f"  {identifier}: {entries[identifier].path}")
        sys.exit(0)

    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_error(e, args.verbose)


def _add_mode_flags(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "-r",
        "--release",
        dest="mode",
        action="store_const",
        const=BuildMode.RELEASE,
        help="Optimized build without debug symbols",
    )
    group.add_argument(
        "-d",
        "--debug",
        dest="mode",
        action="store_const",
        const=BuildMode.DEBUG,
        help="Unoptimized build with debug symbols (default)",
    )
    parser.set_defaults(mode=BuildMode.DEBUG)


def create_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the surtur command."""
    # -v is accepted before or after the command
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Show verbose output",
    )

    parser = argparse.ArgumentParser(
        prog="surtur",
        description="Surtur - build tool for C projects",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"surtur {__version__}",
    )
    parser.add_argument(
        "-C",
        "--project-dir",
        type=Path,
        default=None,
        help="Project directory (default: current directory)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Show verbose output",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    new_parser = subparsers.add_parser("new", parents=[common], help="Create a new project")
    new_parser.add_argument("name", help="Project name (also its directory name)")
    new_parser.add_argument("--lib", action="store_true", help="Create a library project")

    init_parser = subparsers.add_parser(
        "init", parents=[common], help="Make the current directory a project"
    )
    init_parser.add_argument("--lib", action="store_true", help="Create a library project")

    build_parser = subparsers.add_parser("build", parents=[common], help="Build the project")
    _add_mode_flags(build_parser)
    target_group = build_parser.add_mutually_exclusive_group()
    target_group.add_argument(
        "--asm",
        dest="target",
        action="store_const",
        const=BuildTarget.ASSEMBLY,
        help="Emit assembly (.s) for each source file",
    )
    target_group.add_argument(
        "--obj",
        dest="target",
        action="store_const",
        const=BuildTarget.OBJECT,
        help="Emit an object file (.o) for each source file",
    )
    build_parser.set_defaults(target=BuildTarget.EXECUTABLE)

    run_parser = subparsers.add_parser("run", parents=[common], help="Build and run the project")
    _add_mode_flags(run_parser)
    run_parser.add_argument(
        "program_args",
        nargs=argparse.REMAINDER,
        help="Arguments passed to the program (after --)",
    )

    test_parser = subparsers.add_parser("test", parents=[common], help="Build and run tests")
    test_parser.add_argument("name", nargs="?", default=None, help="Test name or glob pattern")
    _add_mode_flags(test_parser)

    add_parser = subparsers.add_parser("add", parents=[common], help="Add a dependency")
    add_parser.add_argument("name", help="Dependency identifier")
    add_parser.add_argument("url", help="Archive URL, git repository, or GitHub URL")
    add_parser.add_argument("--version", dest="dep_version", default=None, help="Version or tag")

    remove_parser = subparsers.add_parser("remove", parents=[common], help="Remove a dependency")
    remove_parser.add_argument("name", help="Dependency identifier")

    subparsers.add_parser("deps", parents=[common], help="Fetch dependencies without building")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Surtur - build tool for C projects."""
    argv = list(sys.argv[1:] if argv is None else argv)

    command = CommandSuggester.find_command(argv)
    if command is not None and command not in COMMANDS:
        suggestion = CommandSuggester.suggest(command)
        if suggestion:
            print(
                f"{ErrorFormatter.RED}✗ Unknown command '{command}'. "
                f"Did you mean 'surtur {suggestion}'?{ErrorFormatter.RESET}"
            )
            sys.exit(2)

    parser = create_parser()
    parsed_args = parser.parse_args(argv)

    # If no command specified, show help
    if not parsed_args.command:
        parser.print_help()
        sys.exit(0)

    setup_logging(parsed_args.verbose)

    project_dir = (parsed_args.project_dir or Path.cwd()).resolve()
    PathValidator.validate_project_dir(project_dir)

    verbose = parsed_args.verbose
    if parsed_args.command == "new":
        new_command(NewArgs(project_dir, name=parsed_args.name, lib=parsed_args.lib, verbose=verbose))
    elif parsed_args.command == "init":
        init_command(NewArgs(project_dir, lib=parsed_args.lib, verbose=verbose))
    elif parsed_args.command == "build":
        build_command(
            BuildArgs(project_dir, mode=parsed_args.mode, target=parsed_args.target, verbose=verbose)
        )
    elif parsed_args.command == "run":
        program_args = list(parsed_args.program_args)
        if program_args[:1] == ["--"]:
            program_args = program_args[1:]
        run_command(
            RunArgs(project_dir, mode=parsed_args.mode, program_args=program_args, verbose=verbose)
        )
    elif parsed_args.command == "test":
        test_command(TestArgs(project_dir, name=parsed_args.name, mode=parsed_args.mode, verbose=verbose))
    elif parsed_args.command == "add":
        add_command(
            DependencyArgs(
                project_dir,
                name=parsed_args.name,
                url=parsed_args.url,
                version=parsed_args.dep_version,
                verbose=verbose,
            )
        )
    elif parsed_args.command == "remove":
        remove_command(DependencyArgs(project_dir, name=parsed_args.name, verbose=verbose))
    elif parsed_args.command == "deps":
        deps_command(DependencyArgs(project_dir, verbose=verbose))


if __name__ == "__main__":
    main()
