from __future__ import annotations

from enum import StrEnum, auto

MAX_FILE_BYTES = 10 * 1024 * 1024
"""Files above this size are skipped before scanning (read cost ceiling)."""

CONCEPT_MAX_DOC_BYTES = 200_000
"""Per-file cap applied when indexing documents for the concept ranker."""

DEFAULT_OUTPUT_STEM = "packx-output"
DEFAULT_CONFIG_TEMPLATE = "pack-config.txt"


class OutputStyle(StrEnum):
    """Supported bundle layouts."""

    XML = auto()
    MARKDOWN = auto()


DEFAULT_EXTENSIONS: tuple[str, ...] = (
    "js",
    "jsx",
    "ts",
    "tsx",
    "mjs",
    "cjs",
    "py",
    "rb",
    "go",
    "java",
    "cpp",
    "c",
    "h",
    "rs",
    "swift",
    "kt",
    "scala",
    "php",
    "vue",
    "svelte",
    "astro",
    "css",
    "scss",
    "less",
    "json",
    "yaml",
    "yml",
    "toml",
    "xml",
    "md",
    "mdx",
    "txt",
    "sh",
    "bash",
    "zsh",
    "fish",
    "sql",
    "graphql",
    "gql",
)

IGNORED_DIRS = frozenset(
    {
        "node_modules",
        ".git",
        "dist",
        "build",
        ".next",
        "coverage",
        ".cache",
        "tmp",
        "temp",
    },
)

IGNORED_FILE_GLOBS: tuple[str, ...] = ("*.log", ".DS_Store", "Thumbs.db")

CONCEPT_EXTENSIONS: tuple[str, ...] = (
    "ts",
    "tsx",
    "js",
    "jsx",
    "py",
    "java",
    "cpp",
    "c",
    "go",
    "rs",
    "md",
    "json",
    "yml",
    "yaml",
)

CONCEPT_IGNORED_FILE_GLOBS: tuple[str, ...] = (
    *IGNORED_FILE_GLOBS,
    "pnpm-lock.yaml",
    "package-lock.json",
    "yarn.lock",
    "*.lock",
    "*-bundle.md",
    "gh-*-bundle.md",
    "gh-*.log",
)

CODE_EXTENSIONS: tuple[str, ...] = (".ts", ".tsx", ".js", ".jsx", ".py", ".go", ".rs", ".java")

CONCEPT_DEFAULT_EXCLUDES: tuple[str, ...] = ("d.ts", "spec.ts", "spec.tsx", "test.ts", "test.tsx")

DEFAULT_STOP_WORDS = frozenset(
    {
        # language keywords and filler
        "const",
        "let",
        "var",
        "function",
        "return",
        "import",
        "export",
        "from",
        "class",
        "new",
        "this",
        "that",
        "with",
        "for",
        "while",
        "do",
        "if",
        "else",
        "switch",
        "case",
        "break",
        "continue",
        "try",
        "catch",
        "finally",
        "throw",
        "async",
        "await",
        "typeof",
        "instanceof",
        "void",
        "null",
        "undefined",
        "true",
        "false",
        "and",
        "or",
        "not",
        "the",
        "is",
        "are",
        "was",
        "were",
        "been",
        "being",
        "have",
        "has",
        "had",
        "will",
        "would",
        "could",
        "should",
        "may",
        "might",
        "must",
        "can",
        "shall",
        "in",
        "on",
        "at",
        "to",
        "of",
        "by",
        "as",
        "it",
        "be",
        "an",
        "a",
        "then",
        "end",
        "begin",
        "static",
        "public",
        "private",
        "protected",
        "interface",
        "implements",
        "extends",
        "package",
        "module",
        "enum",
        "use",
        "get",
        "set",
        "map",
        "list",
        "data",
        "file",
        "path",
        "src",
        "dist",
        "node",
        "index",
        "main",
        "def",
        "self",
        "none",
        # repo-generic terms
        "script",
        "scripts",
        "name",
        "string",
        "test",
        "tests",
        "env",
        "channel",
        "pnpm",
        "windows",
        "integrity",
        "sha512",
        "kit",
        "lock",
        "log",
        "global",
        "choices",
    },
)

CONFIG_SECTIONS: dict[str, str] = {
    "search": "search_terms",
    "strings": "search_terms",
    "extensions": "extensions",
    "include": "extensions",
    "exclude": "exclude_extensions",
    "exclude-extensions": "exclude_extensions",
    "ignore": "exclude_extensions",
    "exclude-strings": "exclude_strings",
    "exclude_strings": "exclude_strings",
}
"""Section header (without brackets) to `SearchConfig` field."""
