# src/patch_picasso/models.py
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any

MAX_CHANGED_FILES = 30


@dataclass
class ChangedFile:
    status: str # e.g. "added", "modified", "removed", "renamed"
    filename: str


@dataclass
class PullRequestSummary:
    """
    The subset of a pull request that feeds the generation prompt.
    """
    number: int
    title: str
    body: Optional[str]
    author_login: Optional[str]
    base_ref: Optional[str]
    head_ref: Optional[str]
    head_repo_full_name: Optional[str]
    base_repo_full_name: Optional[str]
    changed_files: List[ChangedFile] = field(default_factory=list)

    @property
    def is_same_repository(self) -> bool:
        """False for forks, and when either side's repository is unknown (e.g. deleted fork)."""
        return bool(self.head_repo_full_name) and self.head_repo_full_name == self.base_repo_full_name

    @classmethod
    def from_api(cls, pr: Dict[str, Any], files: List[Dict[str, Any]]) -> "PullRequestSummary":
        base = pr.get("base") or {}
        head = pr.get("head") or {}
        changed = [
            ChangedFile(status=str(f.get("status", "")), filename=str(f.get("filename", "")))
            for f in files[:MAX_CHANGED_FILES]
        ]
        return cls(
            number=pr.get("number"),
            title=pr.get("title") or "",
            body=pr.get("body"),
            author_login=(pr.get("user") or {}).get("login"),
            base_ref=base.get("ref"),
            head_ref=head.get("ref"),
            head_repo_full_name=(head.get("repo") or {}).get("full_name"),
            base_repo_full_name=(base.get("repo") or {}).get("full_name"),
            changed_files=changed,
        )


@dataclass
class GenerationResult:
    image_prompt: str # At most 800 characters
    caption: str # At most 200 characters


@dataclass
class ImageReference:
    """
    What the image call returned. `published_url` is filled in when the base64
    payload was committed to the repository.
    """
    url: Optional[str] = None
    b64_json: Optional[str] = None
    published_url: Optional[str] = None

    @property
    def needs_publication(self) -> bool:
        return not self.url and bool(self.b64_json)

    @property
    def resolved_url(self) -> Optional[str]:
        return self.url or self.published_url
