"""Changelog and QA plan generation from merged PRs via the Anthropic API."""

import logging
from typing import List

import anthropic

from .models import Issue
from .stats import repo_label


DEFAULT_MODEL = 'claude-sonnet-4-5'
MAX_TOKENS = 4096

CHANGELOG_PROMPT = (
    "You are a product marketing manager writing a public changelog from engineering pull "
    "requests. Each PR is wrapped in <pr></pr> tags with its repository, title, description and "
    "link. Summarize the changes per repository in a changelog format that customers without "
    "knowledge of the internals can follow; several PRs may be combined into one entry. Group "
    "minor fixes into a general fixes line instead of detailing each one. Where possible, link "
    "every PR that contributed to an entry using the URL in its <link> tag. Ignore PRs whose "
    "title contains 'test:' or 'chore:'."
)

QA_PLAN_PROMPT = (
    "You are a QA lead preparing a manual test plan for an upcoming release. Each merged pull "
    "request is wrapped in <pr></pr> tags with its repository, title, description and link. "
    "Group the changes by repository and product area, and for each group list concrete test "
    "scenarios: steps, expected results, and regressions worth re-checking. Call out risky "
    "changes first. Reference the PR links the scenarios come from. Skip PRs whose title "
    "contains 'test:' or 'chore:' unless they change user-visible behaviour."
)


def build_pr_content(prs: List[Issue]) -> str:
    """Serialize merged PRs into the tagged format the prompts expect."""
    return "\n\n".join(
        f"<pr><repo>{repo_label(pr.repository_url)}</repo><title>{pr.title}</title>"
        f"<body>{pr.body or ''}</body><link>{pr.html_url}</link></pr>"
        for pr in prs
    )


def changelog_request(prs: List[Issue]) -> str:
    return f"Turn the following PRs into a public changelog:\n{build_pr_content(prs)}"


def qa_plan_request(prs: List[Issue]) -> str:
    return f"Write a QA test plan covering the following PRs:\n{build_pr_content(prs)}"


def generate_report(api_key: str, system_prompt: str, user_message: str,
                    model: str = DEFAULT_MODEL) -> str:
    """Send one prompt to the Messages API and return the text of the reply.

    Raises:
        anthropic.APIError: If the request fails
    """
    logging.info(f"Requesting report from {model} ({len(user_message)} characters of input)")
    client = anthropic.Anthropic(api_key=api_key)
    response = client.messages.create(
        model=model,
        max_tokens=MAX_TOKENS,
        system=system_prompt,
        messages=[{"role": "user", "content": user_message}],
    )

    text = "".join(block.text for block in response.content if block.type == "text")
    logging.debug(f"Report response: stop={response.stop_reason}, {len(text)} chars")
    return text + "\n"
