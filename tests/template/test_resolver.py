import unittest
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import Mock

from contrib_helper.hosting.github_client import CommitRecord, HostingError, RepositoryInfo
from contrib_helper.template.resolver import (
    NoTemplateConfigured,
    RepoId,
    ResolutionError,
    TemplateResolver,
    UnsupportedUrlFormat,
    UpstreamUnavailable,
    parse_repo_url,
    resolve_current_repo,
)
from contrib_helper.vcs.git_client import GitClient, GitError


HEAD = CommitRecord(
    sha="f" * 40,
    message="Release 1.2",
    author="Maintainer",
    authored_at=datetime(2024, 4, 1, 8, 30, tzinfo=timezone.utc),
)


class TestParseRepoUrl(unittest.TestCase):
    def test_supported_forms(self) -> None:
        cases = [
            ("git@github.com:org/template.git", RepoId("github.com", "org", "template")),
            ("git@github.com:org/template", RepoId("github.com", "org", "template")),
            ("github.com:org/template.git", RepoId("github.com", "org", "template")),
            ("https://github.com/org/template.git", RepoId("github.com", "org", "template")),
            ("https://github.com/org/template", RepoId("github.com", "org", "template")),
            ("https://github.com/org/template/", RepoId("github.com", "org", "template")),
            ("git@git.example.com:team/my.repo.git", RepoId("git.example.com", "team", "my.repo")),
        ]
        for url, expected in cases:
            with self.subTest(url=url):
                self.assertEqual(parse_repo_url(url), expected)

    def test_unsupported_forms(self) -> None:
        for url in (
            "",
            "/srv/git/template.git",
            "http://github.com/org/template",
            "ssh://git@github.com/org/template.git",
            "https://github.com/org",
            "https://github.com/org/template/tree/main",
        ):
            with self.subTest(url=url):
                with self.assertRaises(UnsupportedUrlFormat):
                    parse_repo_url(url)

    def test_slug(self) -> None:
        repo = RepoId("github.com", "org", "template")
        self.assertEqual(repo.slug, "org/template")
        self.assertEqual(str(repo), "org/template")


class TestTemplateResolver(unittest.TestCase):
    def setUp(self) -> None:
        self.hosting = Mock()
        self.hosting.get_repository.return_value = RepositoryInfo("org", "template", "main")
        self.hosting.get_branch_head.return_value = HEAD
        self.hosts = []

        def hosting_for(host):
            self.hosts.append(host)
            return self.hosting

        self.resolver = TemplateResolver(hosting_for)

    def test_resolve_reads_default_branch_head(self) -> None:
        ref = self.resolver.resolve({"template": {"url": "git@github.com:org/template.git"}})
        self.assertEqual(ref.repo, RepoId("github.com", "org", "template"))
        self.assertEqual(ref.url, "git@github.com:org/template.git")
        self.assertEqual(ref.default_branch, "main")
        self.assertEqual(ref.baseline_commit, HEAD.sha)
        self.assertEqual(ref.baseline_timestamp, HEAD.authored_at)
        self.hosting.get_branch_head.assert_called_once_with("org/template", "main")
        self.assertEqual(self.hosts, ["github.com"])

    def test_configured_branch_skips_repository_lookup(self) -> None:
        ref = self.resolver.resolve(
            {"template": {"url": "https://github.com/org/template", "branch": "develop"}}
        )
        self.assertEqual(ref.default_branch, "develop")
        self.hosting.get_repository.assert_not_called()
        self.hosting.get_branch_head.assert_called_once_with("org/template", "develop")

    def test_missing_template(self) -> None:
        for config in (None, {}, {"template": {}}, {"template": {"url": ""}}, {"template": "oops"}):
            with self.subTest(config=config):
                with self.assertRaises(NoTemplateConfigured):
                    self.resolver.resolve(config)
        self.assertEqual(self.hosts, [])

    def test_unsupported_url(self) -> None:
        with self.assertRaises(UnsupportedUrlFormat):
            self.resolver.resolve({"template": {"url": "ftp://example.com/template"}})

    def test_hosting_failure(self) -> None:
        self.hosting.get_branch_head.side_effect = HostingError("404 Not Found")
        with self.assertRaises(UpstreamUnavailable) as ctx:
            self.resolver.resolve({"template": {"url": "git@github.com:org/template.git"}})
        self.assertIsInstance(ctx.exception, ResolutionError)
        self.assertIn("org/template", str(ctx.exception))


class TestResolveCurrentRepo(unittest.TestCase):
    def _git(self, url=None, error=None):
        git = Mock(spec=GitClient(Path("/repo")))
        if error is not None:
            git.get_remote_url.side_effect = error
        else:
            git.get_remote_url.return_value = url
        return git

    def test_uses_canonical_identity(self) -> None:
        hosting = Mock()
        hosting.get_repository.return_value = RepositoryInfo("Me", "App", "main")
        repo = resolve_current_repo(self._git("git@github.com:me/app.git"), lambda host: hosting)
        self.assertEqual(repo, RepoId("github.com", "Me", "App"))
        hosting.get_repository.assert_called_once_with("me/app")

    def test_missing_origin(self) -> None:
        with self.assertRaises(ResolutionError):
            resolve_current_repo(self._git(None), lambda host: Mock())

    def test_git_failure(self) -> None:
        with self.assertRaises(ResolutionError):
            resolve_current_repo(self._git(error=GitError("boom")), lambda host: Mock())

    def test_unknown_to_hosting(self) -> None:
        hosting = Mock()
        hosting.get_repository.side_effect = HostingError("401 Bad credentials")
        with self.assertRaises(UpstreamUnavailable):
            resolve_current_repo(self._git("https://github.com/me/app"), lambda host: hosting)


if __name__ == "__main__":
    unittest.main()
