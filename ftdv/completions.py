"""Shell completion scripts for ``ftdv completions <shell>``.

Scripts complete options, the ``completions`` subcommand, git refs and
paths. Refs are listed by ``git for-each-ref`` at completion time.
"""

from __future__ import annotations

SHELLS: tuple[str, ...] = ("bash", "zsh", "fish")

OPTIONS: tuple[tuple[str, str], ...] = (
    ("--cached", "show staged changes"),
    ("--worktree", "show working tree changes (default)"),
    ("--config", "configuration file path"),
    ("--timeout", "diff tool timeout in seconds"),
    ("--style", "Pygments style for the built-in diff view"),
    ("--theme", "UI theme name"),
    ("--no-color", "disable colors"),
    ("--verbose", "log debug details to stderr"),
    ("--version", "print version and exit"),
    ("--help", "show help and exit"),
)

_BASH = """\
_ftdv() {
    local cur prev
    cur="${COMP_WORDS[COMP_CWORD]}"
    prev="${COMP_WORDS[COMP_CWORD-1]}"
    if [[ "$prev" == "completions" ]]; then
        COMPREPLY=( $(compgen -W "%(shells)s" -- "$cur") )
        return
    fi
    if [[ "$prev" == "--config" ]]; then
        COMPREPLY=( $(compgen -f -- "$cur") )
        return
    fi
    if [[ "$cur" == -* ]]; then
        COMPREPLY=( $(compgen -W "%(options)s" -- "$cur") )
        return
    fi
    local refs
    refs="$(git for-each-ref --format='%%(refname:short)' 2>/dev/null)"
    COMPREPLY=( $(compgen -W "completions $refs" -- "$cur") $(compgen -f -- "$cur") )
}
complete -F _ftdv ftdv
"""

_ZSH = """\
#compdef ftdv

_ftdv_refs() {
    local -a refs
    refs=(${(f)"$(git for-each-ref --format='%%(refname:short)' 2>/dev/null)"})
    _describe 'ref' refs
}

_ftdv() {
    if [[ "${words[2]}" == "completions" ]]; then
        _values 'shell' %(shells)s
        return
    fi
    _arguments \\
%(zsh_options)s
        '*:ref or path:_alternative "refs:ref:_ftdv_refs" "files:path:_files"'
}

_ftdv "$@"
"""

_FISH_HEADER = """\
complete -c ftdv -n '__fish_use_subcommand' -a completions -d 'print shell completion script'
complete -c ftdv -n '__fish_seen_subcommand_from completions' -f -a '%(shells)s'
complete -c ftdv -f -a '(git for-each-ref --format="%%(refname:short)" 2>/dev/null)'
"""


def completion_script(shell: str) -> str:
    """Return the completion script for ``shell``; raise ``ValueError`` if unsupported."""
    names = [name for name, _ in OPTIONS]
    if shell == "bash":
        return _BASH % {"shells": " ".join(SHELLS), "options": " ".join(names)}
    if shell == "zsh":
        lines = []
        for name, help_text in OPTIONS:
            takes_value = name in {"--config", "--timeout", "--style", "--theme"}
            suffix = f":{name[2:]}:" + ("_files" if name == "--config" else "") if takes_value else ""
            lines.append(f"        '{name}[{help_text}]{suffix}' \\")
        return _ZSH % {"shells": " ".join(SHELLS), "zsh_options": "\n".join(lines)}
    if shell == "fish":
        lines = [_FISH_HEADER % {"shells": " ".join(SHELLS)}]
        for name, help_text in OPTIONS:
            requires = " -r" if name in {"--config", "--timeout", "--style", "--theme"} else ""
            lines.append(f"complete -c ftdv -l {name[2:]}{requires} -d '{help_text}'\n")
        return "".join(lines)
    raise ValueError(f"unsupported shell: {shell}")
