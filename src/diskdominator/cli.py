#!/usr/bin/env python3
"""
DiskDominator CLI — duplicate detection and rule-based file organization.
Deletion of duplicates moves files to the system trash, never permanent erase.
Organization plans are previewed before execution and rolled back on failure.
"""
from __future__ import annotations  # Enable postponed evaluation of annotations (PEP 563)
import argparse
import json
import sys
import os
import time
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional, Tuple
import logging

logging.basicConfig(
    level=logging.ERROR,
    format="%(levelname)-8s | %(name)-25s | %(message)s"
)

# === EARLY DEPENDENCY VALIDATION ===
_MISSING_DEPS = []
try:
    from send2trash import send2trash
except ImportError:
    _MISSING_DEPS.append("send2trash")

try:
    import xxhash
except ImportError:
    _MISSING_DEPS.append("xxhash")

if _MISSING_DEPS:
    print("❌ Missing required dependencies:", file=sys.stderr)
    print(f"   pip install {' '.join(_MISSING_DEPS)}", file=sys.stderr)
    print("\nOr install the package with its dependencies:", file=sys.stderr)
    print("   pip install diskdominator", file=sys.stderr)
    sys.exit(1)

# === NORMAL IMPORTS (after validation) ===
from diskdominator.core.models import DuplicateGroup, DuplicateScanOptions
from diskdominator.commands import DuplicateCommand, OrganizeCommand
from diskdominator.exceptions import DiskDominatorError, ValidationError
from diskdominator.organize.models import ExecutionStatus, OrganizationPlan
from diskdominator.organize.planner import PlannerConfig
from diskdominator.utils.convert_utils import ConvertUtils
from diskdominator.services.file_service import FileService
from diskdominator.services.duplicate_service import DuplicateService
from diskdominator.aliases import (
    METHOD_ALIASES, METHOD_CHOICES, METHOD_HELP_TEXT,
    GROUP_BY_ALIASES, GROUP_BY_CHOICES, GROUP_BY_HELP_TEXT,
    COLLISION_ALIASES, COLLISION_CHOICES, COLLISION_HELP_TEXT,
    STRATEGY_ALIASES, STRATEGY_CHOICES, STRATEGY_HELP_TEXT,
    EPILOG_TEXT
)


class CLIApplication:
    """Main CLI application controller."""

    def __init__(self):
        self.start_time: float = time.time()
        self.verbose: bool = False
        self.quiet: bool = False

        # Fix encoding for Windows consoles to prevent UnicodeEncodeError
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding='utf-8')
            sys.stderr.reconfigure(encoding='utf-8')

    @staticmethod
    def parse_args(args=None) -> argparse.Namespace:
        """Parse and validate command-line arguments."""
        parser = argparse.ArgumentParser(
            prog="diskdominator",
            description="DiskDominator — find duplicates and organize files safely",
            formatter_class=argparse.RawTextHelpFormatter,
            epilog=EPILOG_TEXT
        )
        subparsers = parser.add_subparsers(dest="command", required=True)

        common = argparse.ArgumentParser(add_help=False)
        common.add_argument(
            "--input", "-i",
            nargs="+",
            required=True,
            type=str,
            help="Directories (space separated) to scan"
        )
        common.add_argument(
            "--quiet", "-q",
            action="store_true",
            help="Suppress non-essential output"
        )
        common.add_argument(
            "--verbose", "-v",
            action="store_true",
            help="Show detailed statistics, progress and debug logging"
        )
        common.add_argument(
            "--force",
            action="store_true",
            help="Skip confirmation prompts (for automation/scripts)"
        )

        # --- duplicates ---
        dup = subparsers.add_parser(
            "duplicates", parents=[common],
            formatter_class=argparse.RawTextHelpFormatter,
            help="Find duplicate files"
        )
        dup.add_argument(
            "--min-size", "-m",
            default="0",
            type=str,
            metavar='',
            help="Minimum file size (e.g., 500KB, 1MB). Default: 0"
        )
        dup.add_argument(
            "--max-size", "-M",
            default="",
            type=str,
            metavar='',
            help="Maximum file size (e.g., 10MB, 1GB). Default: no limit"
        )
        dup.add_argument(
            "--extensions", "-x",
            nargs="+",
            default=[],
            type=str,
            metavar='',
            help="File extensions (space separated) to include (e.g., .jpg .png)"
        )
        dup.add_argument(
            "--excluded-dirs", '-e',
            nargs="+",
            default=[],
            type=str,
            metavar='',
            dest="excluded_dirs",
            help="Excluded/ignored directories (space separated)"
        )
        dup.add_argument(
            "--include-hidden",
            action="store_true",
            help="Also consider hidden files and folders"
        )
        dup.add_argument(
            "--folders",
            action="store_true",
            help="Also detect duplicate folders (identical contents)"
        )
        dup.add_argument(
            "--method",
            choices=METHOD_CHOICES,
            default="hash",
            type=str,
            help=METHOD_HELP_TEXT
        )
        dup.add_argument(
            "--group-by",
            choices=GROUP_BY_CHOICES,
            default="hash",
            type=str,
            dest="group_by",
            help=GROUP_BY_HELP_TEXT
        )
        dup.add_argument(
            "--strategy",
            choices=STRATEGY_CHOICES,
            default="original",
            type=str,
            help=STRATEGY_HELP_TEXT
        )
        dup.add_argument(
            "--keep-one",
            action="store_true",
            help="Keep one member of every group (see --strategy) and move the rest to trash. "
                 "Always shows preview before deletion for safety."
        )

        # --- organize ---
        org = subparsers.add_parser(
            "organize", parents=[common],
            formatter_class=argparse.RawTextHelpFormatter,
            help="Build and run an organization plan from a rules file"
        )
        org.add_argument(
            "--rules", "-r",
            required=True,
            type=str,
            help="JSON file with a list of rules, or {\"rules\": [...], \"suggestions\": [...]}"
        )
        org.add_argument(
            "--preview",
            action="store_true",
            help="Only show the plan and its change summary"
        )
        org.add_argument(
            "--dry-run",
            action="store_true",
            dest="dry_run",
            help="Run the plan without touching the filesystem"
        )
        org.add_argument(
            "--no-backup",
            action="store_true",
            dest="no_backup",
            help="Do not back up deleted files (they go to trash; no automatic rollback)"
        )
        org.add_argument(
            "--backup-dir",
            default=None,
            type=str,
            metavar='',
            dest="backup_dir",
            help="Where deleted or replaced files are kept. Default: system temp directory"
        )
        org.add_argument(
            "--collisions",
            choices=COLLISION_CHOICES,
            default="default",
            type=str,
            help=COLLISION_HELP_TEXT
        )
        org.add_argument(
            "--workers",
            default=1,
            type=int,
            metavar='',
            help="Run independent operations in parallel (default: 1)"
        )

        return parser.parse_args(args)

    def validate_args(self, args: argparse.Namespace) -> None:
        """Validate command-line arguments before execution."""
        for root in args.input:
            root_path = Path(root).resolve()
            if not root_path.exists():
                self.error_exit(f"Directory not found: {root}")
            if not root_path.is_dir():
                self.error_exit(f"Path is not a directory: {root}")

        needs_prompt = (
            (args.command == "duplicates" and args.keep_one)
            or (args.command == "organize" and not args.preview and not args.dry_run)
        )
        if args.force and not needs_prompt:
            self.error_exit("--force can only be used with an action that changes files")

        # Prevent interactive confirmation in non-TTY environments
        if needs_prompt and not args.force:
            if not sys.stdin.isatty() or not sys.stdout.isatty():
                self.error_exit(
                    "Cannot request interactive confirmation in non-interactive session.\n"
                    "Use --force flag to proceed without confirmation when piping output or running in scripts."
                )

        if args.command == "duplicates":
            try:
                min_size = ConvertUtils.human_to_bytes(args.min_size)
                if args.max_size and ConvertUtils.human_to_bytes(args.max_size) < min_size:
                    self.error_exit("Maximum size cannot be less than minimum size")
            except ValueError as e:
                self.error_exit(f"Invalid size format: {e}")

            for excl_dir in args.excluded_dirs:
                excl_path = Path(excl_dir).resolve()
                if not excl_path.exists():
                    self.warning(f"Excluded directory not found: {excl_dir}")
                elif not excl_path.is_dir():
                    self.warning(f"Excluded path is not a directory: {excl_dir}")
        else:
            if not Path(args.rules).is_file():
                self.error_exit(f"Rules file not found: {args.rules}")
            if args.workers < 1:
                self.error_exit("--workers must be at least 1")

    def create_options(self, args: argparse.Namespace) -> DuplicateScanOptions:
        """Create DuplicateScanOptions from CLI arguments."""
        try:
            return DuplicateScanOptions.from_human_readable(
                min_size_str=args.min_size,
                max_size_str=args.max_size,
                extensions_str=",".join(args.extensions),
                excluded_paths=[str(Path(d.strip()).resolve()) for d in args.excluded_dirs],
                method=METHOD_ALIASES[args.method],
                group_by=GROUP_BY_ALIASES[args.group_by],
                include_hidden=args.include_hidden,
            )
        except ValueError as e:
            self.error_exit(f"Parameter error: {e}")

    def progress_callback(self, stage: str, current: int, total: Optional[int]) -> None:
        """CLI progress callback - shows progress in console."""
        if not self.verbose:
            return

        if total and total > 0:
            percent = (current / total) * 100
            sys.stderr.write(f"\r  [{stage}] {current}/{total} ({percent:.1f}%)")
        else:
            sys.stderr.write(f"\r  [{stage}] {current} files processed...")
        sys.stderr.flush()

    @staticmethod
    def stopped_flag() -> bool:
        """Check if operation should stop (placeholder for signal handling)."""
        return False

    # ------------------------------
    # duplicates
    # ------------------------------

    def run_duplicates(self, args: argparse.Namespace) -> None:
        options = self.create_options(args)
        roots = [str(Path(r).resolve()) for r in args.input]
        if not self.quiet:
            print(f"Scanning: {', '.join(roots)}")

        command = DuplicateCommand()
        try:
            groups = command.detect_duplicates(
                options,
                roots=roots,
                include_directories=args.folders,
                progress_callback=self.progress_callback if self.verbose else None,
                stopped_flag=self.stopped_flag
            )
        except DiskDominatorError as e:
            self.error_exit(f"Detection failed: {e}")

        if self.verbose:
            sys.stderr.write("\n")
            if command.deferred:
                self.warning(f"{len(command.deferred)} file(s) could not be hashed and were skipped")

        if args.strategy != "original":
            DuplicateService.apply_strategy(groups, STRATEGY_ALIASES[args.strategy])

        if args.keep_one:
            self.execute_keep_one(groups, force=args.force)
        else:
            self.output_results(groups)
            if groups and not self.quiet:
                print()
                print(command.calculate_savings(groups).print_summary())

    def output_results(self, groups: List[DuplicateGroup]) -> None:
        """Output duplicate groups with keep/delete markers."""
        if self.quiet:
            return

        if not groups:
            print("No duplicate groups found.")
            return

        total_files = sum(len(g.items) for g in groups)
        print(f"\nFound {len(groups)} duplicate groups ({total_files} items)")

        for idx, group in enumerate(groups, 1):
            size_str = ConvertUtils.bytes_to_human(group.total_size)
            kind = "Folders" if group.kind.value == "folder" else "Files"
            print(f"\n📁 Group {idx} | {group.name} | Total: {size_str} | {kind}: {len(group.items)}")
            for item in group.items:
                marker = "[KEEP]" if item.should_keep else "[DEL] "
                print(f"   {marker} {item.path} [{ConvertUtils.bytes_to_human(item.size)}]")

    def execute_keep_one(self, groups: List[DuplicateGroup], force: bool = False) -> None:
        """Keep the original of every group, trash the rest. Always shows preview before deletion."""
        if not groups:
            if not self.quiet:
                print("No duplicate groups found.")
            return

        files_to_delete = DuplicateService.files_to_delete(groups)
        if not files_to_delete:
            if not self.quiet:
                print("No files to delete.")
            return

        savings = DuplicateCommand.calculate_savings(groups)
        space_saved_str = ConvertUtils.bytes_to_human(savings.recoverable)

        print()
        for idx, group in enumerate(groups, 1):
            size_str = ConvertUtils.bytes_to_human(group.total_size)
            print(f"📁 Group {idx} | Total size: {size_str} | Items: {len(group.items)}")
            print("-" * 60)
            kept = group.kept
            print(f"   [KEEP] {kept.path}")
            print(f"          Size: {ConvertUtils.bytes_to_human(kept.size)}")
            for item in group.reclaimable:
                print(f"   [DEL]  {item.path}")
                print(f"          Size: {ConvertUtils.bytes_to_human(item.size)}")
            print()

        print("=" * 60)
        print(f"Summary: Keep 1 item per group ({len(groups)} preserved, {len(files_to_delete)} deleted)")
        print(f"Total space saved: {space_saved_str}")
        print()

        if force:
            print("⚠️  WARNING: --force flag skips confirmation. Proceeding with deletion...")
        elif not self.confirm(f"Are you sure you want to move {len(files_to_delete)} items to trash? [y/N]: "):
            print("Deletion cancelled by user.")
            return

        print(f"\nMoving {len(files_to_delete)} items to trash...")
        deleted_count = 0
        failed_files = []

        for i, path in enumerate(files_to_delete, 1):
            if self.verbose:
                print(f"  [{i}/{len(files_to_delete)}] {os.path.basename(path)}")
            try:
                FileService.move_to_trash(path)
                deleted_count += 1
            except (OSError, RuntimeError) as e:
                failed_files.append((path, str(e)))
                self.warning(f"Failed to delete {path}: {e}")

        if failed_files:
            print(f"\n⚠️  Partial success: {deleted_count}/{len(files_to_delete)} items moved to trash.")
            print(f"Failed to delete {len(failed_files)} item(s):")
            for path, error in failed_files[:5]:
                print(f"  • {os.path.basename(path)}: {error.split(':')[-1].strip()}")
            if len(failed_files) > 5:
                print(f"  ...and {len(failed_files) - 5} more files")
        else:
            print(f"✅ Successfully moved {deleted_count} items to trash.")
            print(f"Total space saved: {space_saved_str}")

    # ------------------------------
    # organize
    # ------------------------------

    def load_rules(self, path: str) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
        """Rules and suggestions from a JSON document."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            self.error_exit(f"Cannot read rules file: {e}")

        if isinstance(document, list):
            return document, []
        if isinstance(document, dict):
            return document.get("rules", []), document.get("suggestions", [])
        self.error_exit("Rules file must contain a list of rules or an object with 'rules'")

    def output_plan(self, plan: OrganizationPlan) -> None:
        if self.quiet:
            return
        meta = plan.metadata
        print(f"\nPlan '{plan.name}' | {len(plan.operations)} operations | "
              f"{ConvertUtils.bytes_to_human(meta.total_size)} | "
              f"~{ConvertUtils.seconds_to_human(meta.estimated_duration)}")
        for idx, op in enumerate(plan.operations, 1):
            arrow = f" -> {op.destination}" if op.destination else ""
            print(f"  {idx:>3}. {op.type.value:<6} {op.source}{arrow}")

    def run_organize(self, args: argparse.Namespace) -> None:
        rules, suggestions = self.load_rules(args.rules)
        scope = [str(Path(r).resolve()) for r in args.input]
        command = OrganizeCommand(planner_config=PlannerConfig(
            collision_policy=COLLISION_ALIASES[args.collisions]))

        try:
            plan = command.create_plan(rules, suggestions, scope=scope, name=Path(args.rules).stem)
        except ValidationError as e:
            self.error_exit("Plan rejected:\n" + "\n".join(f"  • {p}" for p in e.problems))
        except ValueError as e:
            self.error_exit(f"Invalid rules: {e}")

        if not plan.operations:
            if not self.quiet:
                print("No files matched the rules.")
            return

        self.output_plan(plan)
        changes = command.preview_plan(plan.id)
        if not self.quiet:
            counts = changes.counts()
            print("\nPreview: " + ", ".join(f"{k}: {v}" for k, v in counts.items()))
            print(f"Space freed: {ConvertUtils.bytes_to_human(changes.bytes_freed)}")

        if args.preview:
            return

        if not args.dry_run and not args.force:
            if not self.confirm(f"Apply {len(plan.operations)} operations? [y/N]: "):
                print("Execution cancelled by user.")
                return

        execution = command.execute_plan(
            plan.id,
            dry_run=args.dry_run,
            create_backup=not args.no_backup,
            backup_dir=args.backup_dir,
            max_workers=args.workers,
            cancel_flag=self.stopped_flag,
        )

        summary = execution.summary
        print(f"\nExecution {execution.status.value}"
              f"{' (dry run)' if execution.dry_run else ''}: "
              f"{summary.completed} completed, {summary.failed} failed, {summary.rolled_back} rolled back")
        for error in summary.errors[:5]:
            print(f"  • {error}")
        if execution.status == ExecutionStatus.FAILED:
            sys.exit(2)

    # ------------------------------
    # helpers
    # ------------------------------

    def confirm(self, prompt: str) -> bool:
        # Safety check: confirm we're still in interactive mode
        if not sys.stdin.isatty() or not sys.stdout.isatty():
            self.error_exit(
                "Lost interactive terminal during operation. "
                "Use --force to proceed in non-interactive environments."
            )
        response = input(prompt)
        return response.strip().lower() in ("y", "yes")

    def warning(self, message: str) -> None:
        """Print a warning message to stderr."""
        if not self.quiet:
            print(f"⚠️  {message}", file=sys.stderr)

    @staticmethod
    def error_exit(message: str, code: int = 1) -> NoReturn:
        """Print error and exit."""
        print(f"❌ Error: {message}", file=sys.stderr)
        sys.exit(code)

    def run(self, argv: Optional[List[str]] = None) -> None:
        """Main entry point with conditional output behavior."""
        args = self.parse_args(argv)
        self.verbose = args.verbose
        self.quiet = args.quiet
        if self.verbose:
            logging.getLogger("diskdominator").setLevel(logging.DEBUG)

        self.validate_args(args)

        if args.command == "duplicates":
            self.run_duplicates(args)
        else:
            self.run_organize(args)

        elapsed = time.time() - self.start_time
        if self.verbose:
            print(f"\n✅ Completed in {elapsed:.2f} seconds")


def main() -> None:
    """Application entry point."""
    app = CLIApplication()
    try:
        app.run()
    except KeyboardInterrupt:
        print("\n⚠️  Operation cancelled by user (Ctrl+C)")
        sys.exit(130)
    except Exception as e:
        if os.environ.get("DEBUG"):
            raise
        print(f"❌ Unexpected error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
