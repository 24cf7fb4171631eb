# termwise/pattern_resolver.py
#
# Network-free translation of common natural-language requests. Two static
# tables are consulted in order: fixed phrases (exact, case-insensitive) and
# placeholder rules such as "remove folder {target}" -> "rm -r {target}".

import re
import shlex
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)

_PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")


@dataclass(frozen=True)
class PatternRule:
    template: str
    command_template: str
    _regex: re.Pattern = field(init=False, repr=False, compare=False)
    _placeholder: str = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        names = _PLACEHOLDER_RE.findall(self.template)
        if len(names) != 1:
            raise ValueError(f"Pattern template must contain exactly one placeholder: {self.template!r}")
        if "{" + names[0] + "}" not in self.command_template:
            raise ValueError(f"Command template {self.command_template!r} lacks placeholder '{names[0]}'")

        before, _, after = _PLACEHOLDER_RE.split(self.template)
        pattern = r"\s+".join(re.escape(w) for w in before.split())
        if before.strip():
            pattern += r"\s+"
        pattern += r"(?P<value>\S.*?)"
        if after.strip():
            pattern += r"\s+" + r"\s+".join(re.escape(w) for w in after.split())
        object.__setattr__(self, "_regex", re.compile(rf"^{pattern}$", re.IGNORECASE))
        object.__setattr__(self, "_placeholder", names[0])

    def match(self, phrase: str) -> Optional[str]:
        """Returns the bound placeholder value if phrase fits this template."""
        m = self._regex.match(phrase)
        if not m:
            return None
        return m.group("value").strip() or None

    def render(self, value: str) -> str:
        quoted = shlex.quote(value) if any(ch.isspace() for ch in value) else value
        return self.command_template.replace("{" + self._placeholder + "}", quoted)


FIXED_PHRASES: Dict[str, str] = {
    "list files": "ls",
    "show files": "ls",
    "list directory": "ls",
    "show directory": "ls",
    "what files are here": "ls",
    "see files": "ls",
    "list all files": "ls -la",
    "show all files": "ls -la",
    "list hidden files": "ls -la",
    "show hidden files": "ls -la",
    "go up": "cd ..",
    "go back": "cd ..",
    "go to parent": "cd ..",
    "up one level": "cd ..",
    "go home": "cd ~",
    "go to home": "cd ~",
    "home directory": "cd ~",
    "show current directory": "pwd",
    "where am i": "pwd",
    "current location": "pwd",
    "print working directory": "pwd",
    "clear screen": "clear",
    "clear terminal": "clear",
    "clean screen": "clear",
    "show date": "date",
    "what time is it": "date",
    "current time": "date",
    "show calendar": "cal",
    "calendar": "cal",
    "show month": "cal",
    "open this folder in cursor": "cursor .",
    "open current folder in vscode": "code .",
    "open this folder in gui": "xdg-open .",
}

# Order matters: more specific templates come before general ones.
PATTERN_RULES: Tuple[PatternRule, ...] = (
    PatternRule("remove folder {target}", "rm -r {target}"),
    PatternRule("delete folder {target}", "rm -r {target}"),
    PatternRule("remove directory {target}", "rm -r {target}"),
    PatternRule("delete directory {target}", "rm -r {target}"),
    PatternRule("remove file {target}", "rm {target}"),
    PatternRule("delete file {target}", "rm {target}"),
    PatternRule("create folder {name}", "mkdir {name}"),
    PatternRule("make folder {name}", "mkdir {name}"),
    PatternRule("create directory {name}", "mkdir {name}"),
    PatternRule("make directory {name}", "mkdir {name}"),
    PatternRule("create file {name}", "touch {name}"),
    PatternRule("go to {target}", "cd {target}"),
    PatternRule("open folder {target}", "cd {target}"),
    PatternRule("show contents of {target}", "cat {target}"),
    PatternRule("read file {target}", "cat {target}"),
    PatternRule("find file {name}", "find . -name {name}"),
    PatternRule("search for {text}", "grep -rn {text} ."),
    PatternRule("install package {name}", "sudo apt install {name}"),
)


def resolve_local(phrase: str) -> Optional[str]:
    """Translates phrase using the static tables, or returns None if nothing fits."""
    normalized = " ".join(phrase.split())
    if not normalized:
        return None

    fixed = FIXED_PHRASES.get(normalized.lower())
    if fixed:
        logger.debug(f"Fixed phrase matched: '{normalized}' -> '{fixed}'")
        return fixed

    for rule in PATTERN_RULES:
        value = rule.match(normalized)
        if value is not None:
            command = rule.render(value)
            logger.debug(f"Pattern '{rule.template}' matched '{normalized}' -> '{command}'")
            return command
    return None
