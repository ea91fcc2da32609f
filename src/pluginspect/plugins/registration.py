"""Simulated host registration context.

A minimal stand-in for the registration API a rule-registry provider talks
to at host startup: repositories keyed by (repository key, language key),
rules inside them, and a terminal ``done()`` that commits a repository.
Driving a provider through it yields the repositories and rules it would
have registered, in registration order.
"""

import inspect
from typing import Any

from pluginspect.core.logging import LogSink, get_sink
from pluginspect.models.report import RepositoryNode, RuleNode

DEFAULT_SEVERITY = "MAJOR"
NO_RULE_DATA_NOTE = "rule resource data was absent"
LANGUAGE_ATTRIBUTES = ("LANGUAGE_KEYS", "language_keys")


class RegistrationError(ValueError):
    """Raised when a provider misuses the registration API."""


class SimulatedRule:
    """A rule being registered."""

    def __init__(self, key: str) -> None:
        self.key = key
        self.name: str | None = None
        self.internal_key: str | None = None
        self.severity: str = DEFAULT_SEVERITY
        self.html_description: str | None = None
        self.tags: list[str] = []

    def set_name(self, name: str) -> "SimulatedRule":
        self.name = name
        return self

    def set_internal_key(self, internal_key: str) -> "SimulatedRule":
        self.internal_key = internal_key
        return self

    def set_severity(self, severity: str) -> "SimulatedRule":
        self.severity = severity
        return self

    def set_html_description(self, description: str) -> "SimulatedRule":
        self.html_description = description
        return self

    def add_tags(self, *tags: str) -> "SimulatedRule":
        self.tags.extend(tags)
        return self

    def to_node(self) -> RuleNode:
        return RuleNode(
            key=self.key,
            name=self.name,
            internal_key=self.internal_key,
            severity=self.severity,
        )


class SimulatedRepository:
    """A repository being registered; visible to the host once ``done()`` is called."""

    def __init__(self, context: "SimulatedRegistrationContext", key: str, language: str) -> None:
        self._context = context
        self.key = key
        self.language = language
        self.name: str | None = None
        self.rules: dict[str, SimulatedRule] = {}
        self.resource_loaded = False
        self.committed = False

    def set_name(self, name: str) -> "SimulatedRepository":
        self.name = name
        return self

    def create_rule(self, key: str) -> SimulatedRule:
        if self.committed:
            raise RegistrationError(f"Repository {self.key} is already committed")
        if key in self.rules:
            raise RegistrationError(f"The rule '{key}' of repository '{self.key}' is declared several times")
        rule = SimulatedRule(key)
        self.rules[key] = rule
        return rule

    def mark_resource_loaded(self) -> None:
        """Called by RulesXmlLoader when rule data was read from a resource."""
        self.resource_loaded = True

    def done(self) -> None:
        if self.committed:
            return
        self.committed = True
        self._context._commit(self)

    def to_node(self) -> RepositoryNode:
        note = None
        if not self.rules and not self.resource_loaded:
            note = NO_RULE_DATA_NOTE
        return RepositoryNode(
            key=self.key,
            name=self.name,
            language=self.language,
            rules=[rule.to_node() for rule in self.rules.values()],
            note=note,
        )


class SimulatedRegistrationContext:
    """Registration surface passed to ``define``."""

    def __init__(self, log: LogSink | None = None) -> None:
        self.log = log or get_sink()
        self._created: dict[tuple[str, str], SimulatedRepository] = {}
        self._committed: list[SimulatedRepository] = []

    def create_repository(self, key: str, language: str) -> SimulatedRepository:
        if (key, language) in self._created:
            raise RegistrationError(f"The rule repository '{key}' for language '{language}' is defined several times")
        repository = SimulatedRepository(self, key, language)
        self._created[(key, language)] = repository
        return repository

    def repository(self, key: str) -> SimulatedRepository | None:
        for repository in self._committed:
            if repository.key == key:
                return repository
        return None

    def repositories(self) -> list[SimulatedRepository]:
        """Committed repositories in commit order."""
        return list(self._committed)

    def uncommitted(self) -> list[SimulatedRepository]:
        return [r for r in self._created.values() if not r.committed]

    def _commit(self, repository: SimulatedRepository) -> None:
        self._committed.append(repository)
        self.log.info(
            f"  repo - key: {repository.key} name: {repository.name} count: {len(repository.rules)}"
        )


def declared_languages(definition: Any) -> list[str]:
    """Language keys a rules definition declares, in declared order."""
    for attribute in LANGUAGE_ATTRIBUTES:
        value = getattr(definition, attribute, None)
        if value is None:
            continue
        if isinstance(value, str):
            return [value]
        return [str(v) for v in value]
    return []


def accepts_language(define: Any) -> bool:
    """True if ``define`` takes a language key after the context."""
    try:
        signature = inspect.signature(define)
    except (TypeError, ValueError):
        return False
    positional = [
        p
        for p in signature.parameters.values()
        if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)
    ]
    has_varargs = any(p.kind == p.VAR_POSITIONAL for p in signature.parameters.values())
    return len(positional) >= 2 or (len(positional) == 1 and has_varargs)


class RegistrationDriver:
    """Drives a rules definition through a fresh simulated context."""

    def __init__(self, log: LogSink | None = None) -> None:
        self.log = log or get_sink()

    def drive(self, definition: Any) -> list[RepositoryNode]:
        """Invoke ``define`` and collect the committed repositories.

        Args:
            definition: Constructed rules-definition instance

        Returns:
            Repository nodes in commit order, rules in registration order

        Raises:
            Exception: Whatever ``define`` raises, for the caller to record
        """
        define = getattr(definition, "define")
        context = SimulatedRegistrationContext(log=self.log)
        languages = declared_languages(definition)

        if languages and accepts_language(define):
            for language in languages:
                self.log.debug(f"Registering rules for language {language}")
                define(context, language)
        else:
            define(context)

        for repository in context.uncommitted():
            self.log.warning(
                f"Repository {repository.key} ({repository.language}) was created but never committed; skipped"
            )

        nodes = []
        for repository in context.repositories():
            node = repository.to_node()
            if node.note:
                self.log.info(f"  repo {repository.key}: {node.note}")
            for rule in node.rules:
                self.log.debug(f"  rule:  {rule.key} {rule.internal_key}")
            nodes.append(node)
        return nodes
