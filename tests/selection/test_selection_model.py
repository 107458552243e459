import random
import unittest
from datetime import datetime, timedelta, timezone

from contrib_helper.selection.model import Commit, Direction, SelectionModel


BASE = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_commit(n, files=("app.py",)):
    sha = (f"{n:x}" * 40)[:40]
    return Commit(
        hash=sha,
        short_hash=sha[:7],
        message=f"Commit {n}",
        files=tuple(files),
        author="Dana",
        timestamp=BASE + timedelta(minutes=n),
    )


def make_model(count, wrap=False):
    return SelectionModel([make_commit(n) for n in range(1, count + 1)], wrap=wrap)


class TestCursorMovement(unittest.TestCase):
    def test_default_policy_clamps(self) -> None:
        model = make_model(3)
        self.assertFalse(model.wrap)
        model.move(Direction.UP)
        self.assertEqual(model.cursor, 0)
        model.move(Direction.DOWN)
        model.move(Direction.DOWN)
        model.move(Direction.DOWN)
        self.assertEqual(model.cursor, 2)

    def test_wrap_policy(self) -> None:
        model = make_model(3, wrap=True)
        model.move_up()
        self.assertEqual(model.cursor, 2)
        model.move_down()
        self.assertEqual(model.cursor, 0)

    def test_cursor_stays_in_bounds(self) -> None:
        rng = random.Random(1234)
        for wrap in (False, True):
            for size in (1, 2, 5):
                model = make_model(size, wrap=wrap)
                for _ in range(200):
                    model.move(rng.choice([Direction.UP, Direction.DOWN]))
                    with self.subTest(wrap=wrap, size=size):
                        self.assertTrue(0 <= model.cursor < size)

    def test_single_commit(self) -> None:
        for wrap in (False, True):
            model = make_model(1, wrap=wrap)
            model.move_up()
            model.move_down()
            self.assertEqual(model.cursor, 0)

    def test_empty_model_is_inert(self) -> None:
        model = SelectionModel([], wrap=True)
        self.assertIsNone(model.cursor)
        self.assertIsNone(model.current())
        model.move_down()
        model.toggle_current()
        model.select_all()
        model.invert_selection()
        self.assertIsNone(model.cursor)
        self.assertEqual(model.selected(), [])
        self.assertEqual(len(model), 0)


class TestSelection(unittest.TestCase):
    def test_toggle_twice_restores_flag(self) -> None:
        model = make_model(3)
        model.move_down()
        before = model.is_selected(1)
        model.toggle_current()
        self.assertNotEqual(model.is_selected(1), before)
        model.toggle_current()
        self.assertEqual(model.is_selected(1), before)

    def test_selected_is_in_candidate_order(self) -> None:
        model = make_model(4)
        # toggle 4, then 1, then 3
        for _ in range(3):
            model.move_down()
        model.toggle_current()
        for _ in range(3):
            model.move_up()
        model.toggle_current()
        model.move_down()
        model.move_down()
        model.toggle_current()
        self.assertEqual([c.message for c in model.selected()], ["Commit 1", "Commit 3", "Commit 4"])

    def test_selected_is_subsequence_of_candidates(self) -> None:
        rng = random.Random(99)
        model = make_model(6, wrap=True)
        for _ in range(100):
            rng.choice([model.move_up, model.move_down, model.toggle_current, model.invert_selection])()
            selected = model.selected()
            positions = [model.commits.index(c) for c in selected]
            self.assertEqual(positions, sorted(positions))

    def test_bulk_operations_keep_cursor_and_order(self) -> None:
        model = make_model(3)
        model.move_down()
        model.toggle_current()

        model.invert_selection()
        self.assertEqual([c.message for c in model.selected()], ["Commit 1", "Commit 3"])
        model.select_all()
        self.assertEqual(model.selected_count, 3)
        self.assertEqual(list(model.selected()), list(model.commits))
        model.select_none()
        self.assertEqual(model.selected(), [])
        self.assertEqual(model.cursor, 1)

    def test_current(self) -> None:
        model = make_model(2)
        model.move_down()
        self.assertEqual(model.current().message, "Commit 2")


class TestCommit(unittest.TestCase):
    def test_files_summary(self) -> None:
        self.assertEqual(make_commit(1, files=()).files_summary(), "")
        self.assertEqual(make_commit(1, files=("a", "b", "c")).files_summary(), "a, b, c")
        self.assertEqual(
            make_commit(1, files=("a", "b", "c", "d", "e")).files_summary(), "a, b and 3 more"
        )

    def test_commit_is_immutable(self) -> None:
        commit = make_commit(1)
        with self.assertRaises(AttributeError):
            commit.message = "changed"


if __name__ == "__main__":
    unittest.main()
