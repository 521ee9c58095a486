"""Content inspectors for repository hygiene checks.

Pure functions over already-fetched data. Pattern-based checks are driven
by rule tables of ``(compiled regex, rule_id, severity, description)`` so
rules can be tested and extended on their own.
"""

from __future__ import annotations

import re

from safevibes.models.schemas import DirEntry, InspectionReport, RepositorySnapshot, RuleMatch

Rule = tuple[re.Pattern[str], str, str, str]

# === File name sets ===

DANGEROUS_ENV_FILES = {".env", ".env.local", ".env.development", ".env.production", ".env.prod"}
SAFE_ENV_FILES = (".env.example", ".env.sample", ".env.example.local", ".env.template")
LOCK_FILES = {"package-lock.json", "yarn.lock", "pnpm-lock.yaml", "npm-shrinkwrap.json", "bun.lockb"}

README_NAME = re.compile(r"^readme\.(md|txt|rst)$", re.IGNORECASE)
CONTRIBUTING_NAME = re.compile(r"^contributing\.(md|txt|rst)$", re.IGNORECASE)
SECURITY_POLICY_NAME = re.compile(r"^security\.(md|rst)$", re.IGNORECASE)

# === Pattern Definitions ===

# Secrets pasted into README files
README_SECRET_RULES: list[Rule] = [
    (
        re.compile(r"\b(?:api[_-]?key|apikey|secret|password)\s*[:=]\s*['\"]?[a-zA-Z0-9_-]{20,}", re.IGNORECASE),
        "readme_labeled_secret", "high", "Labeled secret assignment with a long token",
    ),
    (re.compile(r"\bsk-[a-zA-Z0-9]{20,}\b"), "readme_sk_key", "critical", "Paid API secret key (sk-...)"),
    (re.compile(r"\bAKIA[0-9A-Z]{16}\b"), "readme_aws_key", "critical", "AWS access key id"),
    (re.compile(r"\bghp_[a-zA-Z0-9]{36}\b"), "readme_github_pat", "critical", "GitHub personal access token"),
    (re.compile(r"\bgho_[a-zA-Z0-9]{36}\b"), "readme_github_oauth", "critical", "GitHub OAuth token"),
]

# Plain-HTTP links (loopback addresses are fine)
INSECURE_LINK_RULES: list[Rule] = [
    (re.compile(r"http://(?!localhost|127\.0\.0\.1)[^\s)\]>\"']+"), "insecure_link", "low", "Non-HTTPS link"),
]

_CREDENTIAL_WORDS = r"(?:password|passwd|token|api[_-]?key|apikey|secret|credential|authorization|bearer)"

# Credentials written to logs or stdout
CONSOLE_SECRET_RULES: list[Rule] = [
    (
        re.compile(r"\bconsole\.(?:log|debug|info|warn|error|trace)\s*\([^\n]*" + _CREDENTIAL_WORDS, re.IGNORECASE),
        "console_secret", "medium", "Credential-like value passed to console output",
    ),
    (
        re.compile(r"\b(?:print|logging\.(?:debug|info|warning|error))\s*\([^\n]*" + _CREDENTIAL_WORDS, re.IGNORECASE),
        "print_secret", "medium", "Credential-like value passed to print/logging",
    ),
]

# Credentials assigned to string literals
HARDCODED_SECRET_RULES: list[Rule] = [
    (
        re.compile(
            r"[\w.$-]*(?:password|passwd|secret|api[_-]?key|apikey|token|credential)[\w$-]*['\"]?"
            r"\s*[:=]\s*['\"`][^'\"`\s]{6,}['\"`]",
            re.IGNORECASE,
        ),
        "hardcoded_secret", "high", "Credential-like identifier assigned a string literal",
    ),
]

# package.json scripts that can run arbitrary code
SCRIPT_RULES: list[Rule] = [
    (re.compile(r"\beval\s*\("), "script_eval", "high", "Dynamic code evaluation in script"),
    (
        re.compile(r"\b(?:curl|wget)\s+(?:-\S+\s+)*['\"]?https?://(?!localhost|127\.0\.0\.1)", re.IGNORECASE),
        "script_network_fetch", "high", "Download from a remote URL in script",
    ),
    (re.compile(r"\|\s*(?:sh|bash|zsh)\b"), "script_pipe_shell", "critical", "Piping output to shell (RCE risk)"),
]


def match_rules(text: str, rules: list[Rule], location: str) -> list[RuleMatch]:
    """Run a rule table over text.

    Args:
        text: Content to inspect.
        rules: Rule table to apply.
        location: Where the text came from (file path, "scripts", ...).

    Returns:
        One RuleMatch per matching rule (first match only).
    """
    matches = []
    for regex, rule_id, severity, description in rules:
        match = regex.search(text)
        if match is None:
            continue
        matched = match.group(0)
        if len(matched) > 100:
            matched = matched[:100] + "..."
        matches.append(RuleMatch(
            rule_id=rule_id,
            severity=severity,
            location=location,
            matched_content=matched,
            description=description,
        ))
    return matches


# === Listing checks ===


def find_exposed_env_files(listing: list[DirEntry]) -> list[str]:
    """Return committed environment files that may hold secrets.

    Template files such as ``.env.example`` are ignored.
    """
    exposed: list[str] = []
    for entry in listing:
        if entry.type != "file":
            continue
        name = entry.name
        if any(name == safe or name.startswith(safe + ".") for safe in SAFE_ENV_FILES):
            continue
        if name in DANGEROUS_ENV_FILES or (name.startswith(".env.") and not name.endswith(".example")):
            if name not in exposed:
                exposed.append(name)
    return exposed


def _has_file(listing: list[DirEntry], pattern: re.Pattern[str]) -> bool:
    return any(entry.type == "file" and pattern.match(entry.name) for entry in listing)


def has_readme(listing: list[DirEntry]) -> bool:
    return _has_file(listing, README_NAME)


def has_contributing(listing: list[DirEntry]) -> bool:
    return _has_file(listing, CONTRIBUTING_NAME)


def has_security_policy(listing: list[DirEntry]) -> bool:
    return _has_file(listing, SECURITY_POLICY_NAME)


def has_lock_file(listing: list[DirEntry]) -> bool:
    return any(entry.type == "file" and entry.name in LOCK_FILES for entry in listing)


def has_ci_workflow(workflow_listing: list[DirEntry]) -> bool:
    """At least one file under .github/workflows."""
    return any(entry.type == "file" for entry in workflow_listing)


# === Content checks ===


def gitignore_covers_env(text: str | None) -> bool:
    if not text:
        return False
    return ".env" in text.lower()


def readme_has_secrets(text: str | None) -> bool:
    if not text:
        return False
    return bool(match_rules(text, README_SECRET_RULES, "README"))


def readme_has_insecure_links(text: str | None) -> bool:
    if not text:
        return False
    return bool(match_rules(text, INSECURE_LINK_RULES, "README"))


def source_has_console_secrets(files: dict[str, str]) -> bool:
    return any(match_rules(text, CONSOLE_SECRET_RULES, path) for path, text in files.items())


def source_has_hardcoded_secrets(files: dict[str, str]) -> bool:
    return any(match_rules(text, HARDCODED_SECRET_RULES, path) for path, text in files.items())


def scripts_are_dangerous(scripts: dict[str, str] | None) -> bool:
    """Check all package.json script commands together."""
    if not scripts:
        return False
    return bool(match_rules(" ".join(scripts.values()), SCRIPT_RULES, "scripts"))


def inspect_snapshot(snapshot: RepositorySnapshot) -> InspectionReport:
    """Run every inspector over a snapshot."""
    root = snapshot.root_listing
    readme = snapshot.readme or ""
    scripts = snapshot.manifest.scripts

    matches: list[RuleMatch] = []
    matches.extend(match_rules(readme, README_SECRET_RULES, "README"))
    matches.extend(match_rules(readme, INSECURE_LINK_RULES, "README"))
    for path, text in snapshot.source_files.items():
        matches.extend(match_rules(text, CONSOLE_SECRET_RULES, path))
        matches.extend(match_rules(text, HARDCODED_SECRET_RULES, path))
    if scripts:
        matches.extend(match_rules(" ".join(scripts.values()), SCRIPT_RULES, "scripts"))

    rule_ids = {m.rule_id for m in matches}
    readme_rules = {rule_id for _, rule_id, _, _ in README_SECRET_RULES}
    console_rules = {rule_id for _, rule_id, _, _ in CONSOLE_SECRET_RULES}
    hardcoded_rules = {rule_id for _, rule_id, _, _ in HARDCODED_SECRET_RULES}
    script_rules = {rule_id for _, rule_id, _, _ in SCRIPT_RULES}
    link_rules = {rule_id for _, rule_id, _, _ in INSECURE_LINK_RULES}

    return InspectionReport(
        exposed_env_files=find_exposed_env_files(root),
        gitignore_has_env=gitignore_covers_env(snapshot.gitignore),
        readme_sensitive=bool(rule_ids & readme_rules),
        readme_has_http=bool(rule_ids & link_rules),
        console_secrets=bool(rule_ids & console_rules),
        hardcoded_secrets=bool(rule_ids & hardcoded_rules),
        dangerous_scripts=bool(rule_ids & script_rules),
        has_security_policy=has_security_policy(root),
        has_lock_file=has_lock_file(root),
        has_readme=has_readme(root),
        has_contributing=has_contributing(root),
        has_ci=has_ci_workflow(snapshot.workflow_listing),
        matches=matches,
    )
