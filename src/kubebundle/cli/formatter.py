# src/kubebundle/cli/formatter.py
import difflib
from typing import List, Mapping

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from kubebundle.core.models import DocumentRequirements, RequirementType

console = Console()

TYPE_STYLES = {
    RequirementType.RESOURCE: "cyan",
    RequirementType.CRD: "magenta",
    RequirementType.IMAGE: "blue",
}


class BundleFormatter:
    """
    BundleFormatter: renders requirement tables, resource diffs and
    synthesis summaries for the CLI.
    """

    def __init__(self, output: Console = console):
        self.console = output

    def print_requirements(self, results: List[DocumentRequirements], show_all: bool = False):
        table = Table(title="Package Requirements", show_lines=False, header_style="bold magenta")
        table.add_column("Resource", style="white")
        table.add_column("File", style="dim")
        table.add_column("Type")
        table.add_column("Requirement")
        table.add_column("Status", justify="center")

        for result in results:
            doc = result.document
            if not result.requires and not show_all:
                continue
            label = f"{doc.kind}/{doc.name}" if doc.name else doc.kind
            if not result.requires:
                table.add_row(label, doc.filename, "", "[dim]none[/dim]", "")
                continue
            for req in result.requires:
                style = TYPE_STYLES.get(req.type, "white")
                # Only resource requirements can be satisfied inside a package
                if req.fulfilled:
                    status = "[green]✅ fulfilled[/green]"
                elif req.type == RequirementType.RESOURCE:
                    status = "[red]❌ missing[/red]"
                else:
                    status = "[yellow]⚠️ external[/yellow]"
                table.add_row(label, doc.filename, f"[{style}]{req.type.value}[/{style}]",
                              req.message(), status)

        self.console.print(table)

    def print_summary(self, summary: Mapping[str, int]):
        self.console.print(Panel(
            f"[bold white]Dependency Summary[/bold white]\n"
            f"════════════════════════════════════════\n"
            f"Documents:     {summary['documents']}\n"
            f"Requirements:  {summary['total']} "
            f"(resource {summary['resource']}, crd {summary['crd']}, image {summary['image']})\n"
            f"Fulfilled:    [green]{summary['fulfilled']}[/green]\n"
            f"Open:         [yellow]{summary['open']}[/yellow]",
            border_style="dim"
        ))

    def display_diff(self, original_text: str, new_text: str, file_name: str):
        """Colorized unified diff of one resource file."""
        diff = list(difflib.unified_diff(
            original_text.splitlines(),
            new_text.splitlines(),
            fromfile=f"a/{file_name}",
            tofile=f"b/{file_name}",
            lineterm=""
        ))
        if not diff:
            self.console.print(f"[dim]ℹ No changes for {file_name}.[/dim]")
            return

        syntax = Syntax("\n".join(diff), "diff", theme="monokai", line_numbers=True)
        self.console.print(Panel(syntax, title=f"Proposed Change: {file_name}", border_style="green"))

    def display_new_file(self, content: str, file_name: str):
        syntax = Syntax(content.strip(), "yaml", theme="monokai", line_numbers=True)
        self.console.print(Panel(syntax, title=f"[bold green]NEW: {file_name}[/bold green]",
                                 border_style="green"))

    def print_changes(self, before: Mapping[str, str], after: Mapping[str, str], changes: Mapping[str, List[str]]):
        for file_name in changes.get("changed", []):
            self.display_diff(before[file_name], after[file_name], file_name)
        for file_name in changes.get("added", []):
            self.display_new_file(after[file_name], file_name)
