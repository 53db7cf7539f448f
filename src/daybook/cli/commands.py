# src/daybook/cli/commands.py

from __future__ import annotations

import inspect
import logging
import shlex
from collections.abc import Callable
from datetime import date, datetime, timedelta
from typing import cast

from ..core.state import AppState
from ..errors import DaybookError, NotFoundError, ValidationError
from ..habits.check_in import lookup
from ..habits.habit_models import CheckInState, Habit
from ..tasks.task_models import Task, TaskFilter, TaskPriority, TaskType

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

_QUADRANT_TITLES = {
    TaskPriority.URGENT_IMPORTANT: "Urgent & Important",
    TaskPriority.NOT_URGENT_IMPORTANT: "Not Urgent & Important",
    TaskPriority.URGENT_UNIMPORTANT: "Urgent & Unimportant",
    TaskPriority.NOT_URGENT_UNIMPORTANT: "Not Urgent & Unimportant",
}

_STATUS_MARK = {
    CheckInState.COMPLETED: "x",
    CheckInState.FAILED: "-",
    CheckInState.NONE: ".",
}


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /tasks, /checkin, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str, emit: CommandEmitter | None = None) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        Domain errors (unknown ids, bad input) become the reply text.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError:
            parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        logger.debug("Command /%s args=%s", name, args)

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except NotFoundError as e:
            logger.debug("Command /%s: %s", name, e)
            return f"No such {e.kind}: {e.entity_id}"
        except DaybookError as e:
            return f"Error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----


def _short(entity_id: str) -> str:
    return entity_id[:8]


def _split_options(args: list[str]) -> tuple[list[str], dict[str, str]]:
    """Split "words key=value" into (words, options)."""
    words: list[str] = []
    opts: dict[str, str] = {}
    for a in args:
        key, sep, value = a.partition("=")
        if sep and key and key.isidentifier():
            opts[key.lower()] = value
        else:
            words.append(a)
    return words, opts


def _parse_bool(raw: str) -> bool:
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _parse_day_arg(raw: str, today: date) -> date:
    key = raw.strip().lower()
    if key == "today":
        return today
    if key == "yesterday":
        return today - timedelta(days=1)
    if key == "tomorrow":
        return today + timedelta(days=1)
    try:
        return date.fromisoformat(raw.strip())
    except ValueError:
        raise ValidationError(f"expected today, yesterday or YYYY-MM-DD (got {raw!r})") from None


def _with_save_warning(store, text: str) -> str:
    err = getattr(store, "last_persistence_error", None)
    if err is None:
        return text
    return f"{text}\n(warning: changes are kept for this session but were not saved: {err})"


def _resolve_by_ref(items, ref: str, kind: str, label: Callable[[object], str]):
    """Match an entity by full id, unique id prefix, or case-insensitive exact name."""
    for it in items:
        if it.id == ref:
            return it
    key = ref.strip().lower()
    by_name = [it for it in items if label(it).lower() == key]
    if len(by_name) == 1:
        return by_name[0]
    if len(key) >= 4:
        by_prefix = [it for it in items if it.id.lower().startswith(key)]
        if len(by_prefix) == 1:
            return by_prefix[0]
        if len(by_prefix) > 1:
            raise ValidationError(f"{kind} reference is ambiguous: {ref}")
    raise NotFoundError(kind, ref)


def _resolve_task(state: AppState, ref: str) -> Task:
    return _resolve_by_ref(state.task_store.tasks, ref, "task", lambda t: t.title)


def _resolve_habit(state: AppState, ref: str) -> Habit:
    return _resolve_by_ref(state.habit_store.habits, ref, "habit", lambda h: h.name)


def _resolve_list_id(state: AppState, ref: str) -> str:
    return _resolve_by_ref(state.task_store.lists, ref, "list", lambda lst: lst.name).id


def _format_task(task: Task, now: datetime) -> str:
    box = "[x]" if task.completed else "[ ]"
    flags = []
    if task.pinned:
        flags.append("pinned")
    if task.type == TaskType.NOTE:
        flags.append("note")
    line = f"{box} {task.title} ({_short(task.id)})"
    if task.due_date is not None:
        due = task.due_date.strftime("%b %d").replace(" 0", " ")
        if task.due_date.date() == now.date():
            due += " Today"
        elif task.due_date.date() == now.date() + timedelta(days=1):
            due += " Tomorrow"
        line += f" due {due}"
    if flags:
        line += f" [{', '.join(flags)}]"
    return line


def _require(args: list[str], n: int, usage: str) -> None:
    if len(args) < n:
        raise ValidationError(f"usage: {usage}")


# ---- general ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    settings = state.settings
    ts, hs = state.task_store, state.habit_store
    lines = [
        "Status:",
        f"  Storage: {getattr(settings, 'storage_backend', '?')}",
        f"  Lists: {len(ts.lists)}  Tasks: {len(ts.tasks)}  Open: {len(ts.filter_tasks(TaskFilter.ALL))}",
        f"  Habits: {len(hs.active_habits())} active, {len(hs.archived_habits())} archived",
        f"  Pomodoro: {state.pomodoro.mode.value} {state.pomodoro.display()}"
        + (" (running)" if state.pomodoro.running else ""),
    ]
    for name, store in (("tasks", ts), ("habits", hs)):
        if store.last_persistence_error is not None:
            lines.append(f"  Last {name} save/load error: {store.last_persistence_error}")
    return "\n".join(lines)


def cmd_save(state: AppState, args: list[str]) -> str:
    """Retry saving both collections (after a failed write)."""
    results = []
    for name, store in (("tasks", state.task_store), ("habits", state.habit_store)):
        ok = store.save()
        results.append(f"{name}: {'saved' if ok else f'failed ({store.last_persistence_error})'}")
    return "Save: " + ", ".join(results)


# ---- task lists ----


def cmd_lists(state: AppState, args: list[str]) -> str:
    ts = state.task_store
    if not ts.lists:
        return "No lists. Create one with /list add <name>."
    lines = ["Lists:"]
    for lst in ts.lists:
        marker = "*" if lst.id == ts.selected_list_id else " "
        lines.append(f" {marker} {lst.name} ({_short(lst.id)}) {len(ts.tasks_in_list(lst.id))} tasks")
    return "\n".join(lines)


def cmd_list(state: AppState, args: list[str]) -> str:
    """
    /list add <name> [color=#hex] [view=list|board|calendar] [folder=...]
    /list rm <list>
    /list use <list|all>
    /list rename <list> <new name>
    """
    _require(args, 1, "/list add|rm|use|rename ...")
    ts = state.task_store
    sub, rest = args[0].lower(), args[1:]

    if sub == "add":
        words, opts = _split_options(rest)
        _require(words, 1, "/list add <name> [color=#hex]")
        lst = ts.add_list(
            name=" ".join(words),
            color=opts.get("color", "#3B82F6"),
            view=opts.get("view", "list"),
            folder=opts.get("folder"),
        )
        return _with_save_warning(ts, f"List added: {lst.name} ({_short(lst.id)})")

    if sub == "rm":
        _require(rest, 1, "/list rm <list>")
        list_id = _resolve_list_id(state, rest[0])
        name = ts.get_list(list_id).name
        removed = ts.delete_list(list_id)
        return _with_save_warning(ts, f"List deleted: {name} (and {removed} tasks)")

    if sub == "use":
        _require(rest, 1, "/list use <list|all>")
        if rest[0].lower() == "all":
            ts.select_list(None)
            return "Showing tasks from all lists."
        list_id = ts.select_list(_resolve_list_id(state, rest[0]))
        return f"Showing list: {ts.get_list(list_id).name}" if list_id else "Showing tasks from all lists."

    if sub == "rename":
        _require(rest, 2, "/list rename <list> <new name>")
        lst = ts.update_list(_resolve_list_id(state, rest[0]), name=" ".join(rest[1:]))
        return _with_save_warning(ts, f"List renamed: {lst.name}")

    return "Usage: /list add|rm|use|rename ..."


# ---- tasks ----


def cmd_tasks(state: AppState, args: list[str]) -> str:
    """/tasks [today|week|completed|all]"""
    ts = state.task_store
    if args:
        ts.set_filter(args[0])
    now = ts.now()
    visible = ts.visible_tasks(now=now)
    scope = ts.get_list(ts.selected_list_id).name if ts.selected_list_id else "all lists"
    if not visible:
        return f"No tasks found ({ts.filter.value}, {scope})."
    lines = [f"Tasks ({ts.filter.value}, {scope}):"]
    lines.extend(f"  {_format_task(t, now)}" for t in visible)
    return "\n".join(lines)


def _task_add(state: AppState, rest: list[str]) -> str:
    ts = state.task_store
    words, opts = _split_options(rest)
    _require(words, 1, "/task add <title> [list=...] [prio=...] [due=today|tomorrow|next-week|YYYY-MM-DD]")

    if "list" in opts:
        list_id = _resolve_list_id(state, opts["list"])
    elif ts.selected_list_id is not None:
        list_id = ts.selected_list_id
    elif ts.lists:
        list_id = ts.lists[0].id
    else:
        raise ValidationError("no list to add the task to; create one with /list add <name>")

    task = ts.add_task(
        title=" ".join(words),
        list_id=list_id,
        description=opts.get("desc", ""),
        priority=opts.get("prio", TaskPriority.NOT_URGENT_UNIMPORTANT),
    )
    if "due" in opts:
        task = _set_due(state, task, opts["due"])
    return _with_save_warning(ts, f"Task added: {_format_task(task, ts.now())}")


def _set_due(state: AppState, task: Task, raw: str) -> Task:
    ts = state.task_store
    preset = raw.strip().lower()
    if preset in ("today", "tomorrow", "next-week"):
        return ts.set_task_due_date(task.id, preset)
    if preset in ("none", "clear"):
        return ts.update_task(task.id, due_date=None)
    day = _parse_day_arg(raw, ts.now().date())
    return ts.set_task_due_date(task.id, "custom", day)


def cmd_task(state: AppState, args: list[str]) -> str:
    """
    /task add <title> [list=..] [prio=..] [due=..]
    /task done|rm|pin|unpin|show|note|task <task>
    /task due <task> today|tomorrow|next-week|YYYY-MM-DD|none
    /task prio <task> <priority>
    /task edit <task> title=.. desc=..
    """
    _require(args, 1, "/task add|done|rm|pin|unpin|due|prio|note|task|show|edit ...")
    ts = state.task_store
    sub, rest = args[0].lower(), args[1:]

    if sub == "add":
        return _task_add(state, rest)

    _require(rest, 1, f"/task {sub} <task>")
    task = _resolve_task(state, rest[0])
    now = ts.now()

    if sub == "done":
        task = ts.complete_task(task.id)
        return _with_save_warning(ts, _format_task(task, now))
    if sub == "rm":
        ts.delete_task(task.id)
        return _with_save_warning(ts, f"Task deleted: {task.title}")
    if sub in ("pin", "unpin"):
        task = ts.pin_task(task.id, sub == "pin")
        return _with_save_warning(ts, _format_task(task, now))
    if sub in ("note", "task"):
        task = ts.convert_task_type(task.id, sub)
        return _with_save_warning(ts, f"Converted to {task.type.value}: {task.title}")
    if sub == "due":
        _require(rest, 2, "/task due <task> today|tomorrow|next-week|YYYY-MM-DD|none")
        task = _set_due(state, task, rest[1])
        return _with_save_warning(ts, _format_task(task, now))
    if sub == "prio":
        _require(rest, 2, "/task prio <task> <priority>")
        task = ts.update_task_priority(task.id, rest[1])
        return _with_save_warning(ts, f"{task.title}: {_QUADRANT_TITLES[task.priority]}")
    if sub == "edit":
        _, opts = _split_options(rest[1:])
        changes: dict[str, object] = {}
        if "title" in opts:
            changes["title"] = opts["title"]
        if "desc" in opts:
            changes["description"] = opts["desc"]
        if "section" in opts:
            changes["section"] = opts["section"] or None
        if "list" in opts:
            changes["list_id"] = _resolve_list_id(state, opts["list"])
        if not changes:
            return "Usage: /task edit <task> title=.. desc=.. section=.. list=.."
        task = ts.update_task(task.id, **changes)
        return _with_save_warning(ts, _format_task(task, now))
    if sub == "show":
        task = ts.select_task(task.id) or task
        lines = [
            _format_task(task, now),
            f"  list: {ts.get_list(task.list_id).name}",
            f"  priority: {_QUADRANT_TITLES[task.priority]}",
            f"  created: {task.created_at:%Y-%m-%d %H:%M}",
        ]
        if task.section is not None:
            lines.append(f"  section: {task.section.value}")
        if task.description:
            lines.append(f"  {task.description}")
        return "\n".join(lines)

    return "Usage: /task add|done|rm|pin|unpin|due|prio|note|task|show|edit ..."


def cmd_matrix(state: AppState, args: list[str]) -> str:
    """Eisenhower matrix of open tasks."""
    ts = state.task_store
    now = ts.now()
    lines: list[str] = []
    for priority, tasks in ts.tasks_by_quadrant(include_completed=False).items():
        lines.append(f"{_QUADRANT_TITLES[priority]} ({len(tasks)})")
        lines.extend(f"  {_format_task(t, now)}" for t in tasks)
    return "\n".join(lines)


# ---- habits ----


def cmd_sections(state: AppState, args: list[str]) -> str:
    hs = state.habit_store
    if not hs.sections:
        return "No sections. Create one with /section add <name>."
    lines = ["Sections:"]
    for s in hs.sections:
        lines.append(f"  {s.name} ({s.id}) {len(hs.habits_by_section(s.id))} habits")
    return "\n".join(lines)


def cmd_section(state: AppState, args: list[str]) -> str:
    """/section add <name>"""
    if len(args) < 2 or args[0].lower() != "add":
        return "Usage: /section add <name>"
    hs = state.habit_store
    section = hs.add_section(" ".join(args[1:]))
    return _with_save_warning(hs, f"Section: {section.name} ({section.id})")


def _week_strip(habit: Habit, today: date) -> str:
    days = [today - timedelta(days=i) for i in range(6, -1, -1)]
    return "".join(_STATUS_MARK[lookup(habit, d)] for d in days)


def cmd_habits(state: AppState, args: list[str]) -> str:
    """/habits [archived]"""
    hs = state.habit_store
    today = hs.now().date()
    if args and args[0].lower() == "archived":
        archived = hs.archived_habits()
        if not archived:
            return "No archived habits."
        return "\n".join(["Archived habits:"] + [f"  {h.name} ({_short(h.id)})" for h in archived])

    lines: list[str] = []
    for s in hs.sections:
        habits = hs.habits_by_section(s.id)
        if not habits:
            continue
        lines.append(f"{s.name}:")
        for h in habits:
            streak = hs.habit_streak(h.id)
            lines.append(f"  {_week_strip(h, today)} {h.name} ({_short(h.id)}) streak {streak}")
    if not lines:
        return "No habits yet. Add one with /habit add <name> section=<section>."
    return "\n".join(["Last 7 days (x done, - failed, . none):"] + lines)


def _habit_add(state: AppState, rest: list[str]) -> str:
    hs = state.habit_store
    words, opts = _split_options(rest)
    _require(
        words,
        1,
        "/habit add <name> section=<section> [freq=daily|weekly|monthly|custom] "
        "[goal=achieve-it-all|achieve-some|avoid-it-all] [days=1,3,5] [remind=HH:MM] "
        "[popup=yes] [start=YYYY-MM-DD] [end=YYYY-MM-DD]",
    )
    if "section" not in opts:
        raise ValidationError("section is required (section=<name or id>)")
    today = hs.now().date()
    days = [d for d in opts.get("days", "").replace(",", " ").split() if d]
    habit = hs.add_habit(
        name=" ".join(words),
        section=hs.find_section(opts["section"]).id,
        frequency=opts.get("freq", "daily"),
        goal=opts.get("goal", "achieve-it-all"),
        start_date=_parse_day_arg(opts["start"], today) if "start" in opts else None,
        end_date=_parse_day_arg(opts["end"], today) if "end" in opts else None,
        selected_days=days,
        reminder_time=opts.get("remind"),
        auto_popup=_parse_bool(opts.get("popup", "no")),
    )
    return _with_save_warning(hs, f"Habit added: {habit.name} ({_short(habit.id)})")


def cmd_habit(state: AppState, args: list[str]) -> str:
    """
    /habit add <name> section=.. [freq=..] [goal=..] [days=..] [remind=HH:MM]
    /habit rm|archive|restore|show|stats <habit>
    """
    _require(args, 1, "/habit add|rm|archive|restore|show|stats ...")
    hs = state.habit_store
    sub, rest = args[0].lower(), args[1:]

    if sub == "add":
        return _habit_add(state, rest)

    _require(rest, 1, f"/habit {sub} <habit>")
    habit = _resolve_habit(state, rest[0])

    if sub == "rm":
        hs.delete_habit(habit.id)
        return _with_save_warning(hs, f"Habit deleted: {habit.name}")
    if sub == "archive":
        hs.archive_habit(habit.id)
        return _with_save_warning(hs, f"Habit archived: {habit.name}")
    if sub == "restore":
        hs.restore_habit(habit.id)
        return _with_save_warning(hs, f"Habit restored: {habit.name}")
    if sub in ("show", "stats"):
        if sub == "show":
            habit = hs.select_habit(habit.id) or habit
        stats = hs.stats(habit.id)
        lines = [
            f"{habit.name} ({_short(habit.id)})",
            f"  section: {hs.get_section(habit.section).name}",
            f"  frequency: {habit.frequency.value}"
            + (f" days={','.join(str(d) for d in habit.selected_days)}" if habit.selected_days else ""),
            f"  goal: {habit.goal.value}",
            f"  streak: {stats.streak} days",
            f"  this month: {stats.monthly_check_ins} check-ins, {stats.monthly_rate}%",
            f"  total: {stats.total_check_ins} check-ins",
        ]
        if habit.reminder_time:
            lines.append(f"  reminder: {habit.reminder_time}" + (" (popup)" if habit.auto_popup else ""))
        if habit.archived:
            lines.append("  (archived)")
        return "\n".join(lines)

    return "Usage: /habit add|rm|archive|restore|show|stats ..."


def cmd_checkin(state: AppState, args: list[str]) -> str:
    """/checkin <habit> [completed|failed|none] [today|yesterday|YYYY-MM-DD] [note=...]"""
    words, opts = _split_options(args)
    _require(words, 1, "/checkin <habit> [completed|failed|none] [date] [note=...]")
    hs = state.habit_store
    habit = _resolve_habit(state, words[0])
    status = words[1] if len(words) > 1 else CheckInState.COMPLETED
    day = _parse_day_arg(words[2], hs.now().date()) if len(words) > 2 else hs.now().date()
    hs.check_in_habit(habit.id, day, status, opts.get("note"))
    result = hs.check_in_status(habit.id, day)
    return _with_save_warning(hs, f"{habit.name} {day.isoformat()}: {result.value} (streak {hs.habit_streak(habit.id)})")


def cmd_toggle(state: AppState, args: list[str]) -> str:
    """/toggle <habit> [date] -> none -> completed -> failed -> none"""
    _require(args, 1, "/toggle <habit> [today|yesterday|YYYY-MM-DD]")
    hs = state.habit_store
    habit = _resolve_habit(state, args[0])
    day = _parse_day_arg(args[1], hs.now().date()) if len(args) > 1 else hs.now().date()
    new_state = hs.toggle_check_in(habit.id, day)
    return _with_save_warning(hs, f"{habit.name} {day.isoformat()}: {new_state.value}")


# ---- pomodoro ----


def cmd_pomodoro(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/pomodoro [start|pause|next|reset|tick N|set MODE MIN|mode MODE]"""
    timer = state.pomodoro
    sub = args[0].lower() if args else "status"

    if sub == "start":
        timer.start()
    elif sub == "pause":
        timer.pause()
    elif sub == "reset":
        timer.reset()
    elif sub == "next":
        timer.complete_phase()
    elif sub == "mode":
        _require(args, 2, "/pomodoro mode work|short-break|long-break")
        timer.switch_mode(args[1])
    elif sub == "set":
        _require(args, 3, "/pomodoro set work|short-break|long-break <minutes>")
        try:
            minutes = int(args[2])
        except ValueError:
            raise ValidationError(f"minutes must be a number (got {args[2]!r})") from None
        timer.set_duration(args[1], minutes)
    elif sub == "tick":
        seconds = int(args[1]) if len(args) > 1 and args[1].isdigit() else 60
        if timer.tick(seconds) and emit is not None:
            emit(f"[POMODORO] Phase finished. Next: {timer.mode.value}.")
    elif sub != "status":
        return "Usage: /pomodoro [start|pause|next|reset|tick N|set MODE MIN|mode MODE]"

    state_text = "running" if timer.running else "paused"
    return f"Pomodoro: {timer.mode.value} {timer.display()} ({state_text}, {timer.cycles} work sessions this round)"


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show storage, counts and timer state.")
registry.register("save", cmd_save, help_text="Retry saving tasks and habits.")
registry.register("lists", cmd_lists, help_text="Show task lists.")
registry.register("list", cmd_list, help_text="Lists: /list add <name> | rm <list> | use <list|all> | rename <list> <name>.")
registry.register("tasks", cmd_tasks, help_text="Show tasks: /tasks [today|week|completed|all].")
registry.register(
    "task",
    cmd_task,
    help_text="Tasks: /task add <title> | done | rm | pin | unpin | due | prio | note | task | show | edit.",
)
registry.register("matrix", cmd_matrix, help_text="Eisenhower matrix of open tasks.")
registry.register("sections", cmd_sections, help_text="Show habit sections.")
registry.register("section", cmd_section, help_text="Add a habit section: /section add <name>.")
registry.register("habits", cmd_habits, help_text="Show habits with the last 7 days: /habits [archived].")
registry.register("habit", cmd_habit, help_text="Habits: /habit add <name> section=.. | rm | archive | restore | show | stats.")
registry.register(
    "checkin",
    cmd_checkin,
    help_text="Check in: /checkin <habit> [completed|failed|none] [date] [note=..].",
    aliases=["ci"],
)
registry.register("toggle", cmd_toggle, help_text="Cycle a day: none -> completed -> failed -> none.")
registry.register("pomodoro", cmd_pomodoro, help_text="Timer: /pomodoro [start|pause|next|reset|tick N|set MODE MIN].", aliases=["pomo"])
