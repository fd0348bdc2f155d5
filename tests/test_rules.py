"""Tests for the rule-based command parser."""

import pytest

from taskvoice_mcp import Action, ParserUsed, Priority, Target, TaskContext, TaskModel, TaskStatus, parse_with_rules
from taskvoice_mcp.engines.rules import RULE_TIERS, TIER_ORDER, infer_command, parse_clause, split_clauses


class TestTierTable:
    """Tests for the rule tier table itself."""

    def test_tier_order_matches_table(self):
        """Test the tiers run in the declared order."""
        assert tuple(name for name, _ in RULE_TIERS) == TIER_ORDER

    def test_split_clauses(self):
        """Test only the word "and" splits clauses."""
        assert split_clauses("Add milk AND call mom") == ["add milk", "call mom"]
        assert split_clauses("add milk, then call mom") == ["add milk, then call mom"]


class TestCreate:
    """Tests for CREATE commands."""

    def test_create_with_priority_and_date(self, empty_context):
        """Test title, priority and due date are extracted."""
        result = parse_with_rules("add buy milk tomorrow high priority", empty_context)
        assert len(result.commands) == 1
        command = result.commands[0]
        assert command.action == Action.CREATE
        assert command.task_title == "buy milk"
        assert command.updates.priority == Priority.HIGH
        assert command.updates.due_date == "2025-06-16T00:00:00"
        assert command.confidence == pytest.approx(0.8)

    def test_remind_me(self, empty_context):
        """Test "remind me to" creates a task."""
        command = parse_with_rules("remind me to call mom on friday", empty_context).commands[0]
        assert command.action == Action.CREATE
        assert command.task_title == "call mom"
        assert command.updates.due_date == "2025-06-20T00:00:00"

    def test_filler_words_are_ignored(self, empty_context):
        """Test polite prefixes do not end up in the title."""
        command = parse_with_rules("Please add task: water the plants.", empty_context).commands[0]
        assert command.action == Action.CREATE
        assert command.task_title == "water the plants"


class TestDelete:
    """Tests for DELETE and DELETE_ALL commands."""

    def test_delete_everything(self, context):
        """Test an unfiltered bulk delete."""
        command = parse_with_rules("delete all tasks", context).commands[0]
        assert command.action == Action.DELETE_ALL
        assert command.target == Target.ALL
        assert command.filters.is_empty
        assert command.confidence == pytest.approx(1.0)

    def test_clear_list(self, context):
        """Test "clear my list" deletes everything."""
        command = parse_with_rules("clear my list", context).commands[0]
        assert command.action == Action.DELETE_ALL
        assert command.target == Target.ALL

    def test_delete_filtered(self, context):
        """Test a filtered bulk delete keeps its filter."""
        command = parse_with_rules("delete all completed tasks", context).commands[0]
        assert command.action == Action.DELETE_ALL
        assert command.target == Target.FILTERED
        assert command.filters.status == TaskStatus.COMPLETED
        assert command.confidence == pytest.approx(0.9)

    def test_delete_single_resolved(self, context):
        """Test a single delete resolved by position."""
        command = parse_with_rules("delete task 2", context).commands[0]
        assert command.action == Action.DELETE
        assert command.task_id == "2"
        assert command.task_title == "Call mom"
        assert command.confidence == pytest.approx(0.85)

    def test_delete_single_unresolved(self, context):
        """Test an unresolved delete keeps the title and lowers confidence."""
        command = parse_with_rules("delete the dentist appointment", context).commands[0]
        assert command.action == Action.DELETE
        assert command.task_id is None
        assert command.task_title == "dentist appointment"
        assert command.confidence <= 0.6


class TestUpdate:
    """Tests for UPDATE and UPDATE_ALL commands."""

    def test_mark_first_task_complete(self, fixed_now):
        """Test an ordinal status update against a one-task list."""
        context = TaskContext(tasks=[TaskModel(id="1", title="Pay bills")], now=fixed_now)
        result = parse_with_rules("mark first task complete", context)
        assert len(result.commands) == 1
        command = result.commands[0]
        assert command.action == Action.UPDATE
        assert command.task_id == "1"
        assert command.updates.status == TaskStatus.COMPLETED
        assert command.confidence >= 0.9

    def test_status_by_title(self, context):
        """Test "<title> is done"."""
        command = parse_with_rules("call mom is done", context).commands[0]
        assert command.action == Action.UPDATE
        assert command.task_id == "2"
        assert command.updates.status == TaskStatus.COMPLETED

    def test_start_sets_in_progress(self, context):
        """Test "start" moves a task to in progress."""
        command = parse_with_rules("start the report", context).commands[0]
        assert command.task_id == "3"
        assert command.updates.status == TaskStatus.IN_PROGRESS

    def test_priority_single(self, context):
        """Test a single priority change."""
        command = parse_with_rules("set task 2 to low priority", context).commands[0]
        assert command.action == Action.UPDATE
        assert command.task_id == "2"
        assert command.updates.priority == Priority.LOW
        assert command.updates.status is None

    def test_priority_of_phrase(self, context):
        """Test "set priority of X to Y"."""
        command = parse_with_rules("set priority of call mom to urgent", context).commands[0]
        assert command.task_id == "2"
        assert command.updates.priority == Priority.HIGH

    def test_priority_with_trailing_date(self, context):
        """Test a due date after the priority is kept."""
        command = parse_with_rules("mark groceries as high priority tomorrow", context).commands[0]
        assert command.task_id == "1"
        assert command.updates.priority == Priority.HIGH
        assert command.updates.due_date == "2025-06-16T00:00:00"

    def test_due_date(self, context):
        """Test moving a task to another day."""
        command = parse_with_rules("move call mom to tomorrow", context).commands[0]
        assert command.action == Action.UPDATE
        assert command.task_id == "2"
        assert command.updates.due_date == "2025-06-16T00:00:00"
        assert command.confidence == pytest.approx(0.8)

    def test_due_date_phrase(self, context):
        """Test "set due date of X to Y"."""
        command = parse_with_rules("set due date of task 1 to friday", context).commands[0]
        assert command.task_id == "1"
        assert command.updates.due_date == "2025-06-20T00:00:00"

    def test_update_all_status(self, context):
        """Test an unfiltered bulk status update."""
        command = parse_with_rules("mark all tasks as done", context).commands[0]
        assert command.action == Action.UPDATE_ALL
        assert command.target == Target.ALL
        assert command.updates.status == TaskStatus.COMPLETED
        assert command.confidence == pytest.approx(0.95)

    def test_update_all_filtered(self, context):
        """Test a filtered bulk status update."""
        command = parse_with_rules("mark all pending tasks as completed", context).commands[0]
        assert command.action == Action.UPDATE_ALL
        assert command.target == Target.FILTERED
        assert command.filters.status == TaskStatus.PENDING
        assert command.updates.status == TaskStatus.COMPLETED
        assert command.confidence == pytest.approx(0.9)

    def test_update_all_priority(self, context):
        """Test a bulk priority update."""
        command = parse_with_rules("set all tasks to high priority", context).commands[0]
        assert command.action == Action.UPDATE_ALL
        assert command.target == Target.ALL
        assert command.updates.priority == Priority.HIGH


class TestRead:
    """Tests for READ commands."""

    def test_read_filtered(self, context):
        """Test a filtered read."""
        command = parse_with_rules("show all pending tasks", context).commands[0]
        assert command.action == Action.READ
        assert command.target == Target.FILTERED
        assert command.filters.status == TaskStatus.PENDING

    @pytest.mark.parametrize("text", ["what's on my list", "show me my tasks", "list tasks"])
    def test_read_all(self, context, text):
        """Test unfiltered reads."""
        command = parse_with_rules(text, context).commands[0]
        assert command.action == Action.READ
        assert command.target == Target.ALL

    def test_question_is_not_an_update(self, context):
        """Test questions ending in a status word stay reads."""
        command = parse_with_rules("what tasks are done", context).commands[0]
        assert command.action == Action.READ
        assert command.filters.status == TaskStatus.COMPLETED


class TestCompound:
    """Tests for multi-clause transcripts."""

    def test_delete_pending_and_prioritize(self, empty_context):
        """Test two intents in one sentence become two commands."""
        result = parse_with_rules("delete all pending tasks and mark grocery as high priority", empty_context)
        assert len(result.commands) == 2

        first, second = result.commands
        assert first.action == Action.DELETE_ALL
        assert first.target == Target.FILTERED
        assert first.filters.status == TaskStatus.PENDING

        assert second.action == Action.UPDATE
        assert "grocery" in second.task_title
        assert second.updates.priority == Priority.HIGH
        assert second.confidence <= 0.6

    def test_interpretation_joins_commands(self, context):
        """Test the interpretation lists every command in order."""
        result = parse_with_rules("delete task 2 and then add call dad", context)
        assert [c.action for c in result.commands] == [Action.DELETE, Action.CREATE]
        assert result.interpretation == "Delete task: Call mom, then Create task: call dad"

    def test_unmatched_clause_is_dropped(self, context):
        """Test a clause no tier recognises does not add a command."""
        result = parse_with_rules("add bread and butter", context)
        assert len(result.commands) == 1
        assert result.commands[0].task_title == "bread"


class TestFallbackInference:
    """Tests for keyword inference and robustness."""

    @pytest.mark.parametrize("text", ["", "   ", "!!!", "and and and", "hello there"])
    def test_always_returns_a_command(self, context, text):
        """Test any text yields at least one command without raising."""
        result = parse_with_rules(text, context)
        assert len(result.commands) >= 1
        assert result.parser_used == ParserUsed.FALLBACK

    def test_unknown(self, context):
        """Test unrecognised text is UNKNOWN with zero confidence."""
        command = parse_with_rules("hello there", context).commands[0]
        assert command.action == Action.UNKNOWN
        assert command.confidence == 0.0

    def test_infer_delete(self, context):
        """Test a stray delete keyword."""
        command = infer_command("maybe delete it", context)
        assert command.action == Action.DELETE
        assert command.confidence == pytest.approx(0.4)

    def test_infer_drops_conjunction(self, context):
        """Test a joining "and" never becomes the inferred reference."""
        command = infer_command("delete and delete", context)
        assert command.action == Action.DELETE
        assert command.task_title is None
        assert infer_command("set and change", context).task_title != "and"

    def test_infer_update(self, context):
        """Test a stray update keyword."""
        command = infer_command("i should change something", context)
        assert command.action == Action.UPDATE
        assert command.confidence == pytest.approx(0.3)

    def test_infer_create(self, context):
        """Test a stray create keyword."""
        command = infer_command("maybe a new plant", context)
        assert command.action == Action.CREATE
        assert command.confidence == pytest.approx(0.4)

    def test_parse_clause_returns_none(self, context):
        """Test a single unmatched clause."""
        assert parse_clause("hello there", context) is None
