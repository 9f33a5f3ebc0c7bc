import json
import os
import unittest
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import litellm
from click.testing import CliRunner

from patch_picasso.comments import IMAGE_UNAVAILABLE_TEXT
from patch_picasso.main import main_cli
from tests.fakes import FakeGitHubAPI, pr_payload

MARKER = "<!-- patch-picasso -->"
REPO = "/repos/octo/widgets"
IMAGE_PATH = ".github/patch-picasso/7-20240101120000.png"

BASE_ENV = {
    "GITHUB_TOKEN": "gh-token",
    "OPENAI_API_KEY": "sk-test",
    "GITHUB_REPOSITORY": "octo/widgets",
}


def completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def image_response(url=None, b64_json=None):
    return SimpleNamespace(data=[SimpleNamespace(url=url, b64_json=b64_json)])


class TestMainCli(unittest.TestCase):
    def setUp(self):
        self.api = FakeGitHubAPI()
        self.runner = CliRunner()

        patchers = {
            "request": patch("patch_picasso.scm_client.requests.request", side_effect=self.api),
            "completion": patch("patch_picasso.prompt_synthesizer.litellm.acompletion", new_callable=AsyncMock),
            "image": patch("patch_picasso.image_generator.litellm.aimage_generation", new_callable=AsyncMock),
            "clock": patch("patch_picasso.image_storage._utc_timestamp", return_value="20240101120000"),
        }
        self.mocks = {name: p.start() for name, p in patchers.items()}
        for p in patchers.values():
            self.addCleanup(p.stop)

        self.mocks["completion"].return_value = completion(
            json.dumps({"imagePrompt": "a cat coding", "caption": "meow-ge requests"}))
        self.mocks["image"].return_value = image_response(url="https://img.example/cat.png")

    def invoke(self, args, env=None):
        full_env = dict(BASE_ENV)
        full_env.update(env or {})
        with patch.dict(os.environ, full_env, clear=True):
            with self.runner.isolated_filesystem():
                return self.runner.invoke(main_cli, args)

    def stub_pr(self, comments=None, **pr_kwargs):
        self.api.add("GET", f"{REPO}/issues/7/comments", comments or [])
        self.api.add("GET", f"{REPO}/pulls/7", pr_payload(**pr_kwargs))
        self.api.add("GET", f"{REPO}/pulls/7/files", [{"status": "modified", "filename": "src/purr.py"}])
        self.api.add("POST", f"{REPO}/issues/7/comments", {"id": 99, "html_url": "https://github.com/c/99"}, 201)

    def posted_body(self):
        posts = self.api.called("POST", f"{REPO}/issues/7/comments")
        self.assertEqual(len(posts), 1)
        return posts[0]["json"]["body"]

    # --- Configuration failures ---

    def test_missing_secret_exits_before_any_network_call(self):
        for missing in ["GITHUB_TOKEN", "OPENAI_API_KEY"]:
            with self.subTest(missing=missing):
                with self.assertLogs("patch_picasso", level="ERROR") as logs:
                    result = self.invoke(["--pr", "7"], env={missing: ""})
                self.assertEqual(result.exit_code, 1)
                self.assertTrue(any(missing in line for line in logs.output))
        self.assertEqual(self.api.calls, [])
        self.mocks["completion"].assert_not_called()

    def test_invalid_repo_string(self):
        with self.assertLogs("patch_picasso", level="ERROR") as logs:
            result = self.invoke(["--repo", "octo-widgets", "--pr", "7"])
        self.assertEqual(result.exit_code, 1)
        self.assertTrue(any("Invalid repo string: octo-widgets" in line for line in logs.output))
        self.assertEqual(self.api.calls, [])

    def test_missing_pr_number_asks_for_flag(self):
        with self.assertLogs("patch_picasso", level="ERROR") as logs:
            result = self.invoke([])
        self.assertEqual(result.exit_code, 1)
        self.assertTrue(any("--pr" in line for line in logs.output))
        self.assertEqual(self.api.calls, [])

    # --- Pipeline ---

    def test_existing_marker_comment_short_circuits(self):
        self.stub_pr(comments=[{"id": 1, "body": f"{MARKER}\n\n> old caption"}])

        result = self.invoke(["--pr", "7"])

        self.assertEqual(result.exit_code, 0)
        self.mocks["completion"].assert_not_called()
        self.mocks["image"].assert_not_called()
        self.assertEqual(self.api.called("POST"), [])

    def test_posts_comment_with_caption_and_hosted_image(self):
        self.stub_pr()

        result = self.invoke(["--pr-number", "7"])

        self.assertEqual(result.exit_code, 0)
        body = self.posted_body()
        self.assertTrue(body.startswith(MARKER))
        self.assertIn("> meow-ge requests", body)
        self.assertIn("![Funny PR Image](https://img.example/cat.png)", body)
        self.assertEqual(self.mocks["image"].call_args.kwargs["prompt"], "a cat coding")
        # idempotency check happens before the PR is fetched
        self.assertEqual(self.api.calls[0]["path"], f"{REPO}/issues/7/comments")

    def test_pr_number_from_event_payload(self):
        self.stub_pr()
        with self.runner.isolated_filesystem() as temp_dir:
            event_path = os.path.join(temp_dir, "event.json")
            with open(event_path, "w") as f:
                json.dump({"pull_request": {"number": 7}}, f)
            env = dict(BASE_ENV, GITHUB_EVENT_PATH=event_path)
            with patch.dict(os.environ, env, clear=True):
                result = self.runner.invoke(main_cli, [])

        self.assertEqual(result.exit_code, 0)
        self.posted_body()

    def test_malformed_generator_output_uses_fallback(self):
        self.stub_pr()
        self.mocks["completion"].return_value = completion("just some prose")

        result = self.invoke(["--pr", "7"])

        self.assertEqual(result.exit_code, 0)
        self.assertEqual(self.mocks["image"].call_args.kwargs["prompt"], "just some prose")
        self.assertIn("> A lighthearted take on this PR", self.posted_body())

    def test_base64_image_published_to_head_branch(self):
        self.stub_pr()
        self.mocks["image"].return_value = image_response(b64_json="iVBORw0KGgo=")
        self.api.add("GET", f"{REPO}/branches/feature%2Fcats", {"name": "feature/cats"})
        self.api.add("PUT", f"{REPO}/contents/{IMAGE_PATH}", {"content": {"path": IMAGE_PATH}}, 201)

        result = self.invoke(["--pr", "7"], env={"PATCH_PICASSO_PUBLISH_TARGET": "head_branch"})

        self.assertEqual(result.exit_code, 0)
        self.assertIn(
            f"![Funny PR Image](https://raw.githubusercontent.com/octo/widgets/refs/heads/feature/cats/{IMAGE_PATH})",
            self.posted_body())

    def test_base64_image_published_to_images_branch(self):
        self.stub_pr()
        self.mocks["image"].return_value = image_response(b64_json="iVBORw0KGgo=")
        self.api.add("GET", REPO, {"default_branch": "main"})
        self.api.add("GET", f"{REPO}/branches/main", {"commit": {"sha": "deadbeef"}})
        self.api.add("POST", f"{REPO}/git/refs", {"ref": "refs/heads/art"}, 201)
        self.api.add("PUT", f"{REPO}/contents/{IMAGE_PATH}", {"content": {}}, 201)

        result = self.invoke(["--pr", "7"], env={"PATCH_PICASSO_IMAGE_BRANCH": "art"})

        self.assertEqual(result.exit_code, 0)
        self.assertEqual(self.api.called("POST", f"{REPO}/git/refs")[0]["json"]["ref"], "refs/heads/art")
        self.assertIn(f"https://raw.githubusercontent.com/octo/widgets/refs/heads/art/{IMAGE_PATH}", self.posted_body())

    def test_base64_image_from_fork_comments_unavailable(self):
        self.stub_pr(same_repo=False)
        self.mocks["image"].return_value = image_response(b64_json="iVBORw0KGgo=")

        result = self.invoke(["--pr", "7"], env={"PATCH_PICASSO_PUBLISH_TARGET": "head_branch"})

        self.assertEqual(result.exit_code, 0)
        body = self.posted_body()
        self.assertIn(IMAGE_UNAVAILABLE_TEXT, body)
        self.assertNotIn("raw.githubusercontent.com", body)
        self.assertEqual(self.api.called("PUT"), [])

    def test_missing_image_with_abort_policy_fails_without_posting(self):
        self.stub_pr(same_repo=False)
        self.mocks["image"].return_value = image_response(b64_json="iVBORw0KGgo=")

        result = self.invoke(["--pr", "7"], env={
            "PATCH_PICASSO_PUBLISH_TARGET": "head_branch",
            "PATCH_PICASSO_ON_MISSING_IMAGE": "abort",
        })

        self.assertEqual(result.exit_code, 1)
        self.assertEqual(self.api.called("POST"), [])

    def test_image_provider_failure_exits_non_zero_without_posting(self):
        self.stub_pr()
        self.mocks["image"].side_effect = litellm.exceptions.ServiceUnavailableError(
            message="try later", llm_provider="openai", model="gpt-image-1")

        with self.assertLogs("patch_picasso", level="ERROR") as logs:
            result = self.invoke(["--pr", "7"])

        self.assertEqual(result.exit_code, 1)
        self.assertEqual(self.api.called("POST"), [])
        self.assertTrue(any("Failed [upstream-api]" in line and "503" in line for line in logs.output))
        self.assertFalse(any("Unhandled exception" in line for line in logs.output))

    def test_upstream_api_error_exits_non_zero(self):
        self.api.add("GET", f"{REPO}/issues/7/comments", [])
        self.api.add("GET", f"{REPO}/pulls/7", {"message": "Server Error"}, 500, "Internal Server Error")

        with self.assertLogs("patch_picasso", level="ERROR") as logs:
            result = self.invoke(["--pr", "7"])

        self.assertEqual(result.exit_code, 1)
        self.assertTrue(any("upstream-api" in line and "500" in line for line in logs.output))
        self.mocks["completion"].assert_not_called()


if __name__ == '__main__':
    unittest.main()
