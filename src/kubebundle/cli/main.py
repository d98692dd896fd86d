#!/usr/bin/env python3
"""
KUBEBUNDLE CLI
--------------
Command-line front end over the engine:
1. deps            - static dependency report for a package directory
2. best-practices  - synthesize add-ons into an existing package
3. init / clone    - assemble a new Draft revision into a local directory

Author: KubeBundle Team
Date: 2026-10-17
"""

import sys
import asyncio
import logging
import argparse
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

from kubebundle.core.config import Settings
from kubebundle.core.errors import KubeBundleError
from kubebundle.core.models import BestPracticesSelection, NamespaceOption
from kubebundle.dependencies.extractor import DependencyExtractor, summarize, unfulfilled
from kubebundle.resources.manifest import load_root_manifest
from kubebundle.resources.resource_map import ResourceMap
from kubebundle.revision.assembly import RevisionAssembler, RevisionRequest
from kubebundle.revision.store import InMemoryPackageStore, RevisionNotFound
from kubebundle.revision.tasks import can_clone_revision
from kubebundle.synthesis.best_practices import apply_best_practices, infer_selection, new_add_ons
from kubebundle.synthesis.catalog import TransformCatalog
from kubebundle.cli.formatter import BundleFormatter

console = Console()
logger = logging.getLogger("kubebundle.cli")

UPSTREAM_REVISION = "upstream"


class KubeBundleCLI:
    """
    CLI wrapper that translates user commands into engine actions.
    """

    def __init__(self):
        self.parser = argparse.ArgumentParser(
            prog="kubebundle",
            description="KubeBundle - Package dependency analysis & best-practice synthesis",
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        self.formatter = BundleFormatter(console)
        self._setup_args()

    def _add_best_practice_args(self, parser: argparse.ArgumentParser):
        group = parser.add_argument_group("best practices")
        ns = group.add_mutually_exclusive_group()
        ns.add_argument("--namespace", help="Set every resource to this namespace")
        ns.add_argument("--deployment-namespace", action="store_true",
                        help="Bind the namespace to the deployment at deploy time")
        group.add_argument("--create-namespace", action="store_true", help="Also add a Namespace resource")
        group.add_argument("--app-name", default="", help="app.kubernetes.io/name label")
        group.add_argument("--component", default="", help="app.kubernetes.io/component label")
        group.add_argument("--part-of", default="", help="app.kubernetes.io/part-of label")
        group.add_argument("--kubeval", action="store_true", help="Validate resources against schemas")
        group.add_argument("--catalog", help="YAML/JSON function catalog (default: built-in)")

    def _add_info_args(self, parser: argparse.ArgumentParser):
        parser.add_argument("--name", help="Package name (default: destination directory name)")
        parser.add_argument("--repository", default="local", help="Target repository")
        parser.add_argument("--description", help="Package description")
        parser.add_argument("--keywords", help="Comma-separated keywords")
        parser.add_argument("--site", help="Package site URL")

    def _setup_args(self):
        self.parser.add_argument("-v", "--version", action="version", version="kubebundle v0.1.0")
        self.parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
        subparsers = self.parser.add_subparsers(dest="command", metavar="Command")

        deps = subparsers.add_parser("deps", help="🔍 Report package dependencies")
        deps.add_argument("path", help="Package directory")
        deps.add_argument("--all", action="store_true", help="List documents without requirements too")
        deps.add_argument("--fail-on-missing", action="store_true",
                          help="Exit with status 2 if a resource requirement is unfulfilled")

        bp = subparsers.add_parser("best-practices", help="🛡️ Apply best-practice add-ons")
        bp.add_argument("path", help="Package directory")
        bp.add_argument("--dry-run", action="store_true", help="Preview results without writing")
        bp.add_argument("--diff", action="store_true", help="Show the proposed file changes")
        self._add_best_practice_args(bp)

        init = subparsers.add_parser("init", help="📦 Create a new package from scratch")
        init.add_argument("dest", help="Destination directory (must be empty)")
        self._add_info_args(init)
        self._add_best_practice_args(init)

        clone = subparsers.add_parser("clone", help="📦 Create a new package by cloning another")
        clone.add_argument("source", help="Source package directory")
        clone.add_argument("dest", help="Destination directory (must be empty)")
        clone.add_argument("--keep-best-practices", action="store_true",
                           help="Skip requested add-ons the source already carries")
        self._add_info_args(clone)
        self._add_best_practice_args(clone)

    def print_header(self, subtitle: str):
        console.print(Panel.fit(
            "[bold cyan]KubeBundle v0.1.0[/bold cyan]",
            title=f"[bold white]{subtitle}[/bold white]",
            border_style="cyan"
        ))

    def _load_catalog(self, settings: Settings) -> TransformCatalog:
        if settings.catalog_path:
            return TransformCatalog.from_file(settings.catalog_path)
        return TransformCatalog.default()

    def _selection_from_args(self, args: argparse.Namespace) -> BestPracticesSelection:
        set_namespace = bool(args.namespace or args.deployment_namespace)
        if args.create_namespace and not set_namespace:
            self.parser.error("--create-namespace requires --namespace or --deployment-namespace")

        labels = (args.app_name, args.component, args.part_of)
        return BestPracticesSelection(
            set_namespace=set_namespace,
            create_namespace=args.create_namespace,
            namespace_option=NamespaceOption.DEPLOYMENT if args.deployment_namespace else NamespaceOption.USER_DEFINED,
            namespace=args.namespace or "",
            set_labels=any(labels),
            application_name_label=args.app_name,
            component_label=args.component,
            part_of_label=args.part_of,
            set_kubeval=args.kubeval,
        )

    def _require_dir(self, path: str) -> Path:
        package_dir = Path(path).resolve()
        if not package_dir.is_dir():
            raise KubeBundleError(f"Package directory '{path}' not found.")
        return package_dir

    def _require_empty(self, path: str) -> Path:
        dest = Path(path).resolve()
        if dest.exists() and any(dest.iterdir()):
            raise KubeBundleError(f"Destination '{path}' is not empty.")
        return dest

    def run_deps(self, args: argparse.Namespace) -> int:
        resources = ResourceMap.from_directory(self._require_dir(args.path))
        results = DependencyExtractor().extract(resources)
        self.formatter.print_requirements(results, show_all=args.all)
        self.formatter.print_summary(summarize(results))

        missing = [r for r in unfulfilled(results) if r.type.value == "resource"]
        if args.fail_on_missing and missing:
            return 2
        return 0

    def run_best_practices(self, args: argparse.Namespace, settings: Settings) -> int:
        package_dir = self._require_dir(args.path)
        resources = ResourceMap.from_directory(package_dir)
        selection = self._selection_from_args(args)
        if selection.is_empty:
            console.print("[bold yellow]⚠️  No best practice selected; nothing to do.[/bold yellow]")
            return 0

        updated = apply_best_practices(resources, selection, self._load_catalog(settings))
        changes = resources.diff(updated)
        if args.diff or args.dry_run:
            self.formatter.print_changes(resources, updated, changes)

        if args.dry_run:
            console.print("[dim]Dry run: nothing written.[/dim]")
            return 0

        written = updated.write_to(package_dir)
        console.print(f"[green]Wrote {len(written)} file(s):[/green] {', '.join(written)}")
        return 0

    async def _assemble(self, store: InMemoryPackageStore, request: RevisionRequest,
                        settings: Settings, dest: Path) -> List[str]:
        assembler = RevisionAssembler(store, self._load_catalog(settings))
        created = await assembler.assemble(request)
        resources = await store.get_resources(created.name)
        console.print(f"[green]Created Draft revision[/green] [bold]{created.name}[/bold]")
        return resources.write_to(dest)

    def run_init(self, args: argparse.Namespace, settings: Settings) -> int:
        dest = self._require_empty(args.dest)
        request = RevisionRequest(
            package_name=args.name or dest.name,
            target_repository=args.repository,
            description=args.description or "",
            keywords=args.keywords or "",
            site=args.site or "",
            selection=self._selection_from_args(args),
            revision=settings.new_revision_name,
        )
        written = asyncio.run(self._assemble(InMemoryPackageStore(), request, settings, dest))
        console.print(f"Wrote {len(written)} file(s) to {dest}")
        return 0

    def run_clone(self, args: argparse.Namespace, settings: Settings) -> int:
        source_dir = self._require_dir(args.source)
        dest = self._require_empty(args.dest)

        store = InMemoryPackageStore()
        upstream = store.seed(UPSTREAM_REVISION, ResourceMap.from_directory(source_dir),
                              package_name=source_dir.name)
        if not can_clone_revision(upstream):
            raise KubeBundleError(f"Revision '{upstream.name}' cannot be cloned.")

        source = store.resources[UPSTREAM_REVISION]
        info = load_root_manifest(source).info
        selection = self._selection_from_args(args)
        if args.keep_best_practices:
            selection = new_add_ons(selection, infer_selection(source))

        # Unset info flags keep the source's values
        request = RevisionRequest(
            package_name=args.name or dest.name,
            target_repository=args.repository,
            description=args.description if args.description is not None else info.description or "",
            keywords=args.keywords if args.keywords is not None else ", ".join(info.keywords or ()),
            site=args.site if args.site is not None else info.site or "",
            source=upstream,
            selection=selection,
            revision=settings.new_revision_name,
        )
        written = asyncio.run(self._assemble(store, request, settings, dest))
        console.print(f"Wrote {len(written)} file(s) to {dest}")
        return 0

    def run(self, argv: Optional[List[str]] = None) -> int:
        args = self.parser.parse_args(argv)
        if not args.command:
            self.parser.print_help()
            return 0

        settings = Settings.resolve(catalog_path=getattr(args, "catalog", None), verbose=args.verbose)
        logging.basicConfig(
            level=settings.log_level,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
            force=True,
        )

        try:
            if args.command == "deps":
                self.print_header("Dependency Report")
                return self.run_deps(args)
            if args.command == "best-practices":
                self.print_header("Best Practices")
                return self.run_best_practices(args, settings)
            if args.command == "init":
                self.print_header("New Package")
                return self.run_init(args, settings)
            if args.command == "clone":
                self.print_header("Clone Package")
                return self.run_clone(args, settings)
        except (KubeBundleError, RevisionNotFound) as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            return 1

        self.parser.print_help()
        return 0


def main():
    """Application entry point with interrupt handling."""
    try:
        sys.exit(KubeBundleCLI().run())
    except KeyboardInterrupt:
        console.print("\n[bold red]Terminated by user.[/bold red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
