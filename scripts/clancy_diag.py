"""Clancy diagnostics CLI."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from clancy.config import ClancySettings
from clancy.context import ContextCompiler
from clancy.notes import KnowledgeCategory
from clancy.plan import DEFAULT_PLAN_FILE, load_phases
from clancy.projects import Project, ProjectLoadError, ProjectLoader
from clancy.session import ContinuityMode, Session


def load_projects(settings: ClancySettings) -> ProjectLoader:
    return ProjectLoader(settings.projects_dir.expanduser())


def open_project(loader: ProjectLoader, name: str) -> Project:
    try:
        return loader.open(name)
    except ProjectLoadError as exc:
        print(f"Project unavailable: {exc}")
        raise SystemExit(1)


def cmd_projects(args: argparse.Namespace) -> None:
    settings = ClancySettings()
    loader = load_projects(settings)
    projects = loader.list_projects()
    if args.json:
        print(json.dumps([project.metadata.model_dump(mode="json") for project in projects], indent=2))
        return
    for project in projects:
        parent = f" (child of {project.metadata.parent})" if project.metadata.parent else ""
        archived = " (archived)" if project.metadata.status == "archived" else ""
        stats = project.metadata.stats
        print(f"{project.name}{parent}{archived}: {stats.total_tasks} tasks, {stats.total_sessions} sessions")


def cmd_notes(args: argparse.Namespace) -> None:
    settings = ClancySettings()
    project = open_project(load_projects(settings), args.project)
    try:
        categories = [KnowledgeCategory.parse(args.category)] if args.category else list(KnowledgeCategory)
    except ValueError as exc:
        print(str(exc))
        raise SystemExit(2)

    for category in categories:
        content = project.notes.read(category)
        print(f"=== {category.value} ===")
        print(content.strip() or "(empty)")
        print()


def cmd_tasks(args: argparse.Namespace) -> None:
    settings = ClancySettings()
    project = open_project(load_projects(settings), args.project)

    logs = project.task_logs()
    if args.limit is not None and args.limit > 0:
        logs = logs[-args.limit :]

    entries = []
    for path in logs:
        document = json.loads(path.read_text(encoding="utf-8"))
        entries.append(
            {
                "task_number": _task_number(document, path),
                "prompt": document.get("prompt"),
                "success": document.get("success"),
                "summary": document.get("summary"),
                "cost_usd": document.get("cost_usd"),
                "file": path.name,
            }
        )

    if args.json:
        print(json.dumps(entries, indent=2))
    else:
        for entry in entries:
            status = "ok" if entry["success"] else "failed"
            number = "???" if entry["task_number"] is None else f"{entry['task_number']:03d}"
            print(f"{number} [{status}] {entry['prompt']}")


def _task_number(document: dict, path: Path) -> int | None:
    number = document.get("task_number")
    if isinstance(number, int) and not isinstance(number, bool):
        return number
    prefix = path.name.split("-", 1)[0]
    return int(prefix) if prefix.isdigit() else None


def cmd_context(args: argparse.Namespace) -> None:
    settings = ClancySettings()
    loader = load_projects(settings)
    project = open_project(loader, args.project)
    compiler = ContextCompiler(
        loader,
        max_tokens=args.max_tokens or settings.max_context_tokens,
        include_parent_notes=settings.include_parent_notes,
    )
    session = Session(project=project, working_dir=Path(settings.working_dir), mode=ContinuityMode.FRESH)
    print(compiler.render(session), end="")


def cmd_phases(args: argparse.Namespace) -> None:
    settings = ClancySettings()
    path = Path(args.plan) if args.plan else Path(settings.working_dir) / DEFAULT_PLAN_FILE
    if not path.is_file():
        print(f"Plan file not found: {path}")
        raise SystemExit(1)

    phases = load_phases(path)
    if args.json:
        print(json.dumps([{"title": phase.title, "description": phase.description} for phase in phases], indent=2))
        return
    for index, phase in enumerate(phases, start=1):
        print(f"{index}. {phase.title}")


def cmd_link(args: argparse.Namespace) -> None:
    settings = ClancySettings()
    loader = load_projects(settings)
    try:
        loader.link(args.child, args.parent)
    except ProjectLoadError as exc:
        print(f"Link failed: {exc}")
        raise SystemExit(1)
    print(f"Linked {args.child} -> {args.parent}")


def cmd_unlink(args: argparse.Namespace) -> None:
    settings = ClancySettings()
    loader = load_projects(settings)
    try:
        previous = loader.unlink(args.project)
    except ProjectLoadError as exc:
        print(f"Unlink failed: {exc}")
        raise SystemExit(1)
    if previous is None:
        print(f"{args.project} has no parent")
    else:
        print(f"Unlinked {args.project} from {previous}")


def cmd_archive(args: argparse.Namespace) -> None:
    settings = ClancySettings()
    loader = load_projects(settings)
    try:
        loader.archive(args.project)
    except ProjectLoadError as exc:
        print(f"Archive failed: {exc}")
        raise SystemExit(1)
    print(f"Project '{args.project}' archived.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Clancy diagnostics")
    sub = parser.add_subparsers(dest="cmd")

    p_projects = sub.add_parser("projects", help="List projects")
    p_projects.add_argument("--json", action="store_true", help="Output JSON")
    p_projects.set_defaults(func=cmd_projects)

    p_notes = sub.add_parser("notes", help="Print a project's notes")
    p_notes.add_argument("project")
    p_notes.add_argument("--category", help="architecture, decisions, failures, or plan")
    p_notes.set_defaults(func=cmd_notes)

    p_tasks = sub.add_parser("tasks", help="List task logs for a project")
    p_tasks.add_argument("project")
    p_tasks.add_argument("--json", action="store_true", help="Output JSON")
    p_tasks.add_argument(
        "--limit",
        type=int,
        default=None,
        help="If provided, show only the latest N tasks",
    )
    p_tasks.set_defaults(func=cmd_tasks)

    p_context = sub.add_parser("context", help="Render the context a fresh session would receive")
    p_context.add_argument("project")
    p_context.add_argument("--max-tokens", type=int, default=None)
    p_context.set_defaults(func=cmd_context)

    p_phases = sub.add_parser("phases", help="List phases from a markdown plan")
    p_phases.add_argument("--plan", help=f"Plan file (default: {DEFAULT_PLAN_FILE} in the working directory)")
    p_phases.add_argument("--json", action="store_true", help="Output JSON")
    p_phases.set_defaults(func=cmd_phases)

    p_link = sub.add_parser("link", help="Inherit architecture notes from a parent project")
    p_link.add_argument("child")
    p_link.add_argument("parent")
    p_link.set_defaults(func=cmd_link)

    p_unlink = sub.add_parser("unlink", help="Remove a project's parent link")
    p_unlink.add_argument("project")
    p_unlink.set_defaults(func=cmd_unlink)

    p_archive = sub.add_parser("archive", help="Mark a project archived")
    p_archive.add_argument("project")
    p_archive.set_defaults(func=cmd_archive)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return
    args.func(args)


if __name__ == "__main__":
    main()
