"""Pydantic configuration models for url2markdown."""

from enum import Enum
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class HeadingStyle(str, Enum):
    """Markdown heading syntax."""

    ATX = "atx"
    SETEXT = "setext"


class CodeBlockStyle(str, Enum):
    """Markdown code block syntax."""

    FENCED = "fenced"
    INDENTED = "indented"


class ImageHandling(str, Enum):
    """What to emit for <img> elements."""

    INCLUDE = "include"
    ALT_TEXT = "altText"
    REMOVE = "remove"


class ConversionConfig(BaseModel):
    """
    Immutable settings consumed by the Markdown converter.

    Built from a ConversionOptions via ``to_conversion_config()``; callers
    rarely construct it directly.
    """

    heading_style: HeadingStyle = Field(HeadingStyle.ATX, description="ATX (#) or Setext (underlined)")
    code_block_style: CodeBlockStyle = Field(CodeBlockStyle.FENCED, description="Fenced or indented code")
    include_links: bool = Field(True, description="Render links as [text](href)")
    image_handling: ImageHandling = Field(ImageHandling.INCLUDE, description="include, altText or remove")
    include_frontmatter: bool = Field(False, description="Prepend YAML frontmatter")
    timeout: float = Field(30, gt=0, description="Fetch timeout in seconds")

    # Formatting knobs
    bullet_list_marker: Literal["-", "*", "+"] = Field("-", description="Marker for unordered lists")
    fence: Literal["```", "~~~"] = Field("```", description="Fence for fenced code blocks")
    em_delimiter: Literal["_", "*"] = Field("_", description="Delimiter for emphasis")
    strong_delimiter: Literal["**", "__"] = Field("**", description="Delimiter for strong emphasis")

    model_config = {"extra": "forbid", "frozen": True}


class ConversionOptions(BaseModel):
    """
    User-facing conversion options.

    Accepts both snake_case names and the camelCase names used by workflow
    tools (``includeLinks``, ``imageHandling``, ...).
    """

    timeout: float = Field(30, gt=0, description="Request timeout in seconds")
    include_links: bool = Field(True, alias="includeLinks", description="Include links in Markdown")
    image_handling: ImageHandling = Field(
        ImageHandling.INCLUDE,
        alias="imageHandling",
        description="How images are rendered",
    )
    include_images: Optional[bool] = Field(
        None,
        alias="includeImages",
        description="Legacy switch; False is the same as image_handling=remove",
    )
    heading_style: HeadingStyle = Field(HeadingStyle.ATX, alias="headingStyle", description="Heading style")
    code_block_style: CodeBlockStyle = Field(
        CodeBlockStyle.FENCED,
        alias="codeBlockStyle",
        description="Code block style",
    )
    include_frontmatter: bool = Field(
        False,
        alias="includeFrontmatter",
        description="Prepend YAML frontmatter with article metadata",
    )

    model_config = {"extra": "forbid", "populate_by_name": True}

    def model_post_init(self, __context: object) -> None:
        """Fold the legacy include_images switch into image_handling."""
        if self.include_images is False and self.image_handling == ImageHandling.INCLUDE:
            object.__setattr__(self, "image_handling", ImageHandling.REMOVE)

    def to_conversion_config(self) -> ConversionConfig:
        """Derive the immutable converter configuration."""
        return ConversionConfig(
            heading_style=self.heading_style,
            code_block_style=self.code_block_style,
            include_links=self.include_links,
            image_handling=self.image_handling,
            include_frontmatter=self.include_frontmatter,
            timeout=self.timeout,
        )


class ConversionRequest(ConversionOptions):
    """
    A single URL to convert plus its options.

    The URL is validated by the pipeline (ValidateStep) rather than here, so
    that an empty URL surfaces as a per-item ValidationError in batch runs.

    Example:
        request = ConversionRequest(url="https://example.com/post", includeLinks=False)
    """

    url: str = Field("", description="URL of the page to convert")

    @field_validator("url", mode="before")
    @classmethod
    def _strip_url(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, str):
            return value.strip()
        return value


class BatchConfig(BaseModel):
    """
    Configuration for converting several URLs in one run.

    YAML format:
        urls:
          - https://example.com/a
          - https://example.com/b
        options:
          includeLinks: false
          imageHandling: altText
        continue_on_fail: true
    """

    urls: list[str] = Field(default_factory=list, description="URLs to convert")
    options: ConversionOptions = Field(default_factory=ConversionOptions)
    continue_on_fail: bool = Field(
        False,
        alias="continueOnFail",
        description="Record per-item errors instead of aborting the batch",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "INFO",
        description="Logging level",
    )
    log_file: Optional[Path] = Field(None, description="Log file path")

    model_config = {"extra": "forbid", "populate_by_name": True}

    def requests(self) -> list[ConversionRequest]:
        """Build one ConversionRequest per URL sharing the batch options."""
        base = self.options.model_dump()
        return [ConversionRequest(url=url, **base) for url in self.urls]

    def to_yaml(self) -> str:
        """Serialize config to YAML string."""
        import yaml

        return yaml.dump(self.model_dump(mode="json", exclude_none=True), default_flow_style=False)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "BatchConfig":
        """Load config from YAML string."""
        import yaml

        data = yaml.safe_load(yaml_str) or {}
        return cls.model_validate(data)

    @classmethod
    def from_yaml_file(cls, path: Path) -> "BatchConfig":
        """Load config from YAML file."""
        return cls.from_yaml(path.read_text())
