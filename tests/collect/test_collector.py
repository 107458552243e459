import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

from contrib_helper.collect.collector import (
    CollectionError,
    CommitCollector,
    EnrichmentFailed,
    MalformedResponse,
    UpstreamUnavailable,
    summary_line,
)
from contrib_helper.hosting.github_client import HostingError
from contrib_helper.hosting.github_client import MalformedResponse as MalformedRecord
from contrib_helper.template.resolver import RepoId, TemplateReference
from contrib_helper.vcs.git_client import GitError


T = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
CURRENT = RepoId("github.com", "me", "app")
TEMPLATE = TemplateReference(
    repo=RepoId("github.com", "org", "template"),
    url="git@github.com:org/template.git",
    default_branch="main",
    baseline_commit="f" * 40,
    baseline_timestamp=T,
)


def entry(sha, when, message=None):
    return {
        "sha": sha,
        "commit": {
            "message": message or f"Commit {sha[:4]}",
            "author": {"name": "Dana", "date": when.isoformat()},
        },
    }


def sha_of(label):
    return (label * 40)[:40]


class TestCommitCollector(unittest.TestCase):
    def setUp(self) -> None:
        self.hosting = Mock()
        self.git = Mock()
        self.git.changed_files.side_effect = lambda sha: [f"{sha[:4]}.py"]
        self.collector = CommitCollector(self.hosting, self.git)

    def test_timestamp_cut_is_strict_and_chronological(self) -> None:
        # the API lists newest first
        self.hosting.list_commits.return_value = [
            entry(sha_of("d"), T + timedelta(seconds=2)),
            entry(sha_of("c"), T + timedelta(seconds=1)),
            entry(sha_of("b"), T),
            entry(sha_of("a"), T - timedelta(seconds=1)),
        ]
        commits = self.collector.collect(CURRENT, TEMPLATE)
        self.assertEqual([c.hash for c in commits], [sha_of("c"), sha_of("d")])
        self.hosting.list_commits.assert_called_once_with("me/app")

    def test_commit_fields(self) -> None:
        self.hosting.list_commits.return_value = [
            entry(sha_of("ab12"), T + timedelta(hours=1), message="Fix parser crash\n\nLong explanation\nmore"),
        ]
        (commit,) = self.collector.collect(CURRENT, TEMPLATE)
        self.assertEqual(commit.short_hash, sha_of("ab12")[:7])
        self.assertEqual(commit.message, "Fix parser crash")
        self.assertEqual(commit.files, ("ab12.py",))
        self.assertEqual(commit.author, "Dana")
        self.assertEqual(commit.timestamp, T + timedelta(hours=1))

    def test_equal_timestamps_keep_listing_order_reversed(self) -> None:
        when = T + timedelta(minutes=5)
        self.hosting.list_commits.return_value = [entry(sha_of("2"), when), entry(sha_of("1"), when)]
        commits = self.collector.collect(CURRENT, TEMPLATE)
        self.assertEqual([c.hash for c in commits], [sha_of("1"), sha_of("2")])

    def test_root_commit_has_no_files(self) -> None:
        self.git.changed_files.side_effect = None
        self.git.changed_files.return_value = []
        self.hosting.list_commits.return_value = [entry(sha_of("e"), T + timedelta(days=1))]
        (commit,) = self.collector.collect(CURRENT, TEMPLATE)
        self.assertEqual(commit.files, ())

    def test_malformed_records_are_skipped(self) -> None:
        self.hosting.list_commits.return_value = [
            entry(sha_of("a"), T + timedelta(minutes=1)),
            {"sha": sha_of("b"), "commit": {"message": "no author"}},
            {"commit": {"message": "no sha", "author": {"date": T.isoformat()}}},
            "garbage",
        ]
        commits = self.collector.collect(CURRENT, TEMPLATE)
        self.assertEqual([c.hash for c in commits], [sha_of("a")])

    def test_nothing_newer(self) -> None:
        self.hosting.list_commits.return_value = [entry(sha_of("a"), T - timedelta(days=3))]
        self.assertEqual(self.collector.collect(CURRENT, TEMPLATE), [])
        self.git.changed_files.assert_not_called()

    def test_listing_failure(self) -> None:
        self.hosting.list_commits.side_effect = HostingError("502 Bad Gateway")
        with self.assertRaises(UpstreamUnavailable):
            self.collector.collect(CURRENT, TEMPLATE)

    def test_malformed_listing_is_fatal(self) -> None:
        self.hosting.list_commits.side_effect = MalformedRecord("Commit listing is not a list")
        with self.assertRaises(MalformedResponse) as ctx:
            self.collector.collect(CURRENT, TEMPLATE)
        self.assertIsInstance(ctx.exception, CollectionError)

    def test_enrichment_failure(self) -> None:
        self.git.changed_files.side_effect = GitError("fatal: bad object")
        self.hosting.list_commits.return_value = [entry(sha_of("a"), T + timedelta(minutes=1))]
        with self.assertRaises(EnrichmentFailed):
            self.collector.collect(CURRENT, TEMPLATE)


class TestSummaryLine(unittest.TestCase):
    def test_summary_line(self) -> None:
        self.assertEqual(summary_line("Subject\n\nBody"), "Subject")
        self.assertEqual(summary_line("  Subject  "), "Subject")
        self.assertEqual(summary_line(""), "")


if __name__ == "__main__":
    unittest.main()
