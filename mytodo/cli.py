"""mytodo command line: local tasks plus Jira epic tracking."""

import argparse
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from jira import JIRA
from rich.console import Console

from mytodo.agent import BaseAgent, create_agent, parse_tasks, refine_prompt, summary_prompt, tasks_prompt
from mytodo.config import Settings
from mytodo.errors import MytodoError
from mytodo.quip import QuipClient
from mytodo.tasklist import Task, TaskList
from mytodo.tracker.client import QueryExecutor, create_issue, get_jira_client
from mytodo.tracker.discovery import LinkageDiscoverer
from mytodo.tracker.report import FORMAT_ALIASES
from mytodo.tracker.service import generate_tracker, issue_type_breakdown, summarize_project

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Everything a command handler needs, built once in main()."""

    settings: Settings
    tasks: TaskList
    agent: Optional[BaseAgent] = None
    console: Console = field(default_factory=lambda: Console(highlight=False))
    jira_factory: Callable[[Settings], JIRA] = get_jira_client
    quip_factory: Callable[[str], QuipClient] = QuipClient
    read_input: Callable[[str], str] = input


def _confirm(ctx: AppContext, question: str) -> bool:
    return ctx.read_input(f"{question} ").strip().lower() in ("yes", "y")


def print_tasks(ctx: AppContext) -> None:
    for index, task in enumerate(ctx.tasks.all()):
        if task.done:
            ctx.console.print(f"✔\t{index}. {task.content}: Completed", style="bold green", markup=False)
        else:
            ctx.console.print(f"⏳\t{index}. {task.content}: Pending", style="cyan", markup=False)
        for comment in task.comments:
            ctx.console.print(f"\t\t- {comment}", markup=False)


# -------- Task commands --------

def cmd_add(ctx: AppContext, args: argparse.Namespace) -> int:
    note = " ".join(args.text).strip()
    if ctx.agent is None:
        if not note:
            raise ValueError("Nothing to add; give the task text as arguments")
        logger.info("Adding task: %s", note)
        ctx.tasks.add(Task(content=note))
        print_tasks(ctx)
        return 0

    if not note:
        note = sys.stdin.read().strip()
    if not note:
        raise ValueError("no input supplied - give a sentence or pipe in text")

    tasks = parse_tasks(ctx.agent.prompt(tasks_prompt(note)).text())
    while True:
        print("Generated tasks:")
        for task in tasks:
            print(f"  - {task.content}{' (done)' if task.done else ''}")
        answer = ctx.read_input(
            "Confirm adding these tasks? (yes/no). If no, please include how to make it better: "
        ).strip()
        if answer.lower() in ("yes", "y"):
            break
        tasks = parse_tasks(ctx.agent.prompt(refine_prompt(note, answer)).text())

    ctx.tasks.extend(tasks)
    print(f"✅ Added {len(tasks)} task(s) to the list.")
    print_tasks(ctx)
    return 0


def cmd_list(ctx: AppContext, args: argparse.Namespace) -> int:
    if not len(ctx.tasks):
        print("No tasks found.")
        return 0
    print_tasks(ctx)
    if args.summary:
        if ctx.agent is None:
            print("AI is not configured (set USE_AI or OPEN_AI_API_KEY) - no summary.", file=sys.stderr)
            return 0
        summary = ctx.agent.prompt(summary_prompt(ctx.tasks.all())).text()
        print(f"\n🔍 Summary: {summary}")
    return 0


def _task_index(ctx: AppContext, raw: str, action: str) -> Optional[int]:
    if not len(ctx.tasks):
        print(f"No tasks to {action}.")
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Invalid task number: {raw}")


def cmd_remove(ctx: AppContext, args: argparse.Namespace) -> int:
    index = _task_index(ctx, args.index, "remove")
    if index is not None:
        logger.info("Removing task with ID: %d", index)
        ctx.tasks.remove(index)
        print_tasks(ctx)
    return 0


def cmd_done(ctx: AppContext, args: argparse.Namespace) -> int:
    done = args.command == "done"
    index = _task_index(ctx, args.index, "mark as done" if done else "mark as not done")
    if index is not None:
        ctx.tasks.set_done(index, done)
        print_tasks(ctx)
    return 0


def cmd_edit(ctx: AppContext, args: argparse.Namespace) -> int:
    index = _task_index(ctx, args.index, "edit")
    if index is not None:
        ctx.tasks.edit(index, " ".join(args.text))
        print_tasks(ctx)
    return 0


def cmd_comment(ctx: AppContext, args: argparse.Namespace) -> int:
    index = _task_index(ctx, args.index, "comment on")
    if index is not None:
        ctx.tasks.add_comment(index, " ".join(args.text))
        print_tasks(ctx)
    return 0


# -------- Jira commands --------

def _require_jira(ctx: AppContext) -> JIRA:
    if not ctx.settings.jira_configured:
        raise ValueError("JIRA not configured. Please set JIRA_URL, JIRA_EMAIL, and JIRA_TOKEN environment variables")
    return ctx.jira_factory(ctx.settings)


def cmd_jira_summary(ctx: AppContext, args: argparse.Namespace) -> int:
    jira = _require_jira(ctx)
    if not _confirm(ctx, "Summarise JIRA project? (yes/no)"):
        return 0
    executor = QueryExecutor(jira, ctx.settings.page_size)
    project = ctx.settings.project_key
    epics = summarize_project(executor, project, ctx.settings.estimate_fields)

    print(f"Project {project} has {len(epics)} epics")
    for epic in epics:
        print(f"\nEpic {epic.key}: {epic.name}")
        print(f"  {epic.stories} stories: {epic.done} done, {epic.pending} pending")
        print(f"  Est. points: {epic.estimate:.1f}")
    return 0


def cmd_jira_create(ctx: AppContext, args: argparse.Namespace) -> int:
    jira = _require_jira(ctx)
    if not _confirm(ctx, "Create JIRA issue? (yes/no)"):
        return 0
    summary = ctx.read_input("Summary: ")
    description = ctx.read_input("Description: ")
    label = ctx.read_input("Label (optional): ")
    key = create_issue(jira, ctx.settings.project_key, summary, description, labels=[label])
    print(f"✅ Created {key}")
    return 0


def cmd_jira_epic_tracker(ctx: AppContext, args: argparse.Namespace) -> int:
    settings = ctx.settings
    jira = _require_jira(ctx)
    if args.quip and not settings.quip_token:
        raise ValueError("Quip not configured. Please set QUIP_TOKEN environment variable")

    print(f"Fetching epic {args.epic_key} and linked issues...")
    discoverer = LinkageDiscoverer(
        QueryExecutor(jira, settings.page_size),
        epic_link_fields=settings.epic_link_fields,
        estimate_fields=settings.estimate_fields,
    )
    report = generate_tracker(discoverer, args.epic_key, args.format)
    discovery = report.discovery

    if discovery.epic is not None:
        print(f"Epic: {args.epic_key} - {discovery.epic.summary}")
    for outcome in discovery.outcomes:
        status = f"{outcome.added} new"
        if outcome.error:
            status = f"{status}, failed ({outcome.error})" if outcome.found else f"skipped ({outcome.error})"
        print(f"  {outcome.name:<10} {outcome.query}: {outcome.found} found, {status}")
    print(f"Found {len(discovery.issues)} related issues (child work items, subtasks, and linked issues)\n")

    if not report.rows:
        print("No issues related to this epic")
        return 0

    print("Issue breakdown by type:")
    for type_name, count in issue_type_breakdown(discovery.issues.values()).items():
        print(f"  - {type_name}: {count}")
    print()
    print(report.text)

    if args.output:
        Path(args.output).write_text(report.text, encoding="utf-8")
        print(f"\n📄 Saved to {args.output}")

    if args.quip:
        print(f"\nAppending to Quip document: {args.quip}")
        ctx.quip_factory(settings.quip_token).publish_report(args.quip, args.epic_key, report.text)
        print(f"✅ Content appended to Quip document: {args.quip}")
    return 0


# -------- Parser --------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mytodo", description="Manage your TODOs and track Jira epics.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output")
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")
    sub.required = True

    p = sub.add_parser("add", help="Add a task (or let the LLM derive tasks from free-form text)")
    p.add_argument("text", nargs="*")
    p.set_defaults(handler=cmd_add)

    p = sub.add_parser("list", help="List all tasks")
    p.add_argument("-s", "--summary", action="store_true", help="Show a short summary of the tasks")
    p.set_defaults(handler=cmd_list)

    p = sub.add_parser("remove", help="Remove a task by its number")
    p.add_argument("index")
    p.set_defaults(handler=cmd_remove)

    for name, help_text in (("done", "Mark a task as done"), ("undone", "Mark a task as not done")):
        p = sub.add_parser(name, help=f"{help_text} by its number")
        p.add_argument("index")
        p.set_defaults(handler=cmd_done)

    p = sub.add_parser("edit", help="Edit a task's content by its number")
    p.add_argument("index")
    p.add_argument("text", nargs="+")
    p.set_defaults(handler=cmd_edit)

    p = sub.add_parser("cm", help="Add a comment to a task by its number")
    p.add_argument("index")
    p.add_argument("text", nargs="+")
    p.set_defaults(handler=cmd_comment)

    p = sub.add_parser("jira-summary", help="Show epic / story progress of the JIRA project")
    p.set_defaults(handler=cmd_jira_summary)

    p = sub.add_parser("jira-create", help="Create a new JIRA task with an optional label")
    p.set_defaults(handler=cmd_jira_create)

    p = sub.add_parser(
        "jira-epic-tracker",
        help="Generate a project tracker table from a JIRA epic",
        description="Query all stories, tasks, and bugs linked to a JIRA epic and display them in a tracker table.",
    )
    p.add_argument("epic_key")
    p.add_argument("-f", "--format", choices=sorted(FORMAT_ALIASES), default="markdown", help="Output format")
    p.add_argument("-o", "--output", help="Save output to file")
    p.add_argument("-q", "--quip", help="Quip document URL to append to")
    p.set_defaults(handler=cmd_jira_epic_tracker)
    return parser


def run(argv: Optional[List[str]] = None, ctx: Optional[AppContext] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        if ctx is None:
            settings = Settings.from_env()
            ctx = AppContext(
                settings=settings,
                tasks=TaskList(settings.task_file).load(),
                agent=create_agent(settings),
            )
        return args.handler(ctx, args)
    except (ValueError, IndexError) as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    except MytodoError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 2


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
