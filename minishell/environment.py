"""Environment variables stored as ``NAME=value`` strings."""

from __future__ import annotations

from collections.abc import Iterable, Mapping


def get_env_var_name(entry: str) -> str:
    """Return the part of ``entry`` before its first ``=``."""
    return entry.partition("=")[0]


def find_env_var(env: list[str], name: str) -> int | None:
    """Return the index of the entry called ``name``, or None."""
    return next(
        (index for index, entry in enumerate(env) if get_env_var_name(entry) == name),
        None,
    )


def update_env(env: list[str], entry: str) -> None:
    """Set ``entry`` in ``env``, replacing an entry of the same name.

    An entry with a value is not replaced by a bare name: ``export A``
    leaves an existing ``A=1`` alone.
    """
    name = get_env_var_name(entry)
    index = find_env_var(env, name)
    if index is None:
        env.append(entry)
        return
    existing = env[index]
    if "=" in existing and "=" not in entry:
        return
    env[index] = entry


def remove_env_var(env: list[str], name: str) -> None:
    """Remove the first entry called ``name``; do nothing if there is none."""
    index = find_env_var(env, name)
    if index is not None:
        del env[index]


def lookup_env(env: list[str], name: str) -> str | None:
    """Return the value of ``name``, ``""`` if it has none, None if unset."""
    for entry in env:
        key, _, value = entry.partition("=")
        if key == name:
            return value
    return None


def sorted_env(env: Iterable[str]) -> list[str]:
    """Return the entries in byte order, as ``export`` lists them."""
    return sorted(env, key=lambda entry: entry.encode("utf-8", "surrogateescape"))


def _atoi(text: str) -> int:
    """Read a leading integer the way C ``atoi`` does; 0 if there is none."""
    text = text.lstrip(" \t\n\v\f\r")
    sign = 1
    if text[:1] in ("+", "-"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    digits = ""
    for char in text:
        if not "0" <= char <= "9":
            break
        digits += char
    return sign * int(digits) if digits else 0


def get_env_vars(envp: Iterable[str] | Mapping[str, str] | None) -> list[str]:
    """Copy the starting environment and raise SHLVL by one.

    SHLVL is set to 1 when it is not present.
    """
    if envp is None:
        return []
    if isinstance(envp, Mapping):
        env = [f"{key}={value}" for key, value in envp.items()]
    else:
        env = list(envp)
    value = lookup_env(env, "SHLVL")
    if value is None:
        update_env(env, "SHLVL=1")
    else:
        update_env(env, f"SHLVL={_atoi(value) + 1}")
    return env