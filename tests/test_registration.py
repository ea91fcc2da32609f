"""Tests for the simulated registration context."""

from __future__ import annotations

import io

import pytest

from pluginspect.api import RulesDefinition, RulesXmlError, RulesXmlLoader
from pluginspect.plugins.registration import (
    DEFAULT_SEVERITY,
    NO_RULE_DATA_NOTE,
    RegistrationDriver,
    RegistrationError,
    SimulatedRegistrationContext,
    accepts_language,
    declared_languages,
)


class TwoRules(RulesDefinition):
    def define(self, context):
        repository = context.create_repository("repo1", "cs").set_name("Repo One")
        repository.create_rule("ruleA").set_name("Rule A").set_internal_key("a").set_severity("MAJOR")
        repository.create_rule("ruleB").set_name("Rule B").set_internal_key("b").set_severity("MINOR")
        repository.done()


class PerLanguage(RulesDefinition):
    LANGUAGE_KEYS = ("vbnet", "cs")

    def define(self, context, language_key):
        repository = context.create_repository(f"roslyn.{language_key}", language_key)
        repository.create_rule(f"{language_key}.rule")
        repository.done()


class SelfIterating:
    language_keys = ["cs", "vbnet"]

    def define(self, context):
        for language in self.language_keys:
            context.create_repository("shared", language).done()


class NoRuleData(RulesDefinition):
    def define(self, context):
        context.create_repository("empty", "cs").set_name("Empty").done()


class NeverCommitted(RulesDefinition):
    def define(self, context):
        context.create_repository("draft", "cs").create_rule("r1")
        context.create_repository("final", "cs").done()


class TestDriver:
    def test_repository_with_two_ordered_rules(self, log) -> None:
        nodes = RegistrationDriver(log=log).drive(TwoRules())
        assert len(nodes) == 1
        repo = nodes[0]
        assert (repo.key, repo.name, repo.language, repo.note) == ("repo1", "Repo One", "cs", None)
        assert [(r.key, r.name, r.internal_key, r.severity) for r in repo.rules] == [
            ("ruleA", "Rule A", "a", "MAJOR"),
            ("ruleB", "Rule B", "b", "MINOR"),
        ]

    def test_define_called_per_declared_language_in_order(self, log) -> None:
        nodes = RegistrationDriver(log=log).drive(PerLanguage())
        assert [(n.key, n.language) for n in nodes] == [("roslyn.vbnet", "vbnet"), ("roslyn.cs", "cs")]
        assert [n.rules[0].key for n in nodes] == ["vbnet.rule", "cs.rule"]

    def test_define_without_language_parameter_called_once(self, log) -> None:
        nodes = RegistrationDriver(log=log).drive(SelfIterating())
        assert [(n.key, n.language) for n in nodes] == [("shared", "cs"), ("shared", "vbnet")]

    def test_missing_rule_data_is_noted(self, log) -> None:
        nodes = RegistrationDriver(log=log).drive(NoRuleData())
        assert nodes[0].rules == []
        assert nodes[0].note == NO_RULE_DATA_NOTE

    def test_uncommitted_repositories_are_skipped(self, log, log_stream) -> None:
        nodes = RegistrationDriver(log=log).drive(NeverCommitted())
        assert [n.key for n in nodes] == ["final"]
        assert "draft" in log_stream.getvalue()

    def test_define_errors_propagate(self, log) -> None:
        class Failing(RulesDefinition):
            def define(self, context):
                raise LookupError("no rules")

        with pytest.raises(LookupError):
            RegistrationDriver(log=log).drive(Failing())


class TestContext:
    def test_default_severity(self, log) -> None:
        context = SimulatedRegistrationContext(log=log)
        repository = context.create_repository("r", "cs")
        assert repository.create_rule("x").severity == DEFAULT_SEVERITY == "MAJOR"

    def test_duplicate_repository(self, log) -> None:
        context = SimulatedRegistrationContext(log=log)
        context.create_repository("r", "cs")
        context.create_repository("r", "vbnet")
        with pytest.raises(RegistrationError, match="several times"):
            context.create_repository("r", "cs")

    def test_duplicate_rule(self, log) -> None:
        repository = SimulatedRegistrationContext(log=log).create_repository("r", "cs")
        repository.create_rule("x")
        with pytest.raises(RegistrationError, match="several times"):
            repository.create_rule("x")

    def test_committed_repository_is_frozen(self, log) -> None:
        context = SimulatedRegistrationContext(log=log)
        repository = context.create_repository("r", "cs")
        repository.done()
        repository.done()
        assert context.repositories() == [repository]
        assert context.repository("r") is repository
        with pytest.raises(RegistrationError, match="already committed"):
            repository.create_rule("late")


class TestRulesXmlLoader:
    XML = b"""<rules>
      <rule><key>S100</key><name>Naming</name><configKey>cfg.S100</configKey><severity>critical</severity>
        <description>&lt;p&gt;Names&lt;/p&gt;</description><tag>convention</tag><tag>style</tag></rule>
      <rule><key>S200</key></rule>
    </rules>"""

    def test_loads_rules_in_document_order(self, log) -> None:
        repository = SimulatedRegistrationContext(log=log).create_repository("r", "cs")
        assert RulesXmlLoader().load(repository, io.BytesIO(self.XML)) == 2
        first, second = repository.rules.values()
        assert (first.key, first.name, first.internal_key, first.severity) == (
            "S100",
            "Naming",
            "cfg.S100",
            "CRITICAL",
        )
        assert first.html_description == "<p>Names</p>"
        assert first.tags == ["convention", "style"]
        assert (second.internal_key, second.severity) == ("S200", "MAJOR")

    def test_empty_resource_still_counts_as_rule_data(self, log) -> None:
        repository = SimulatedRegistrationContext(log=log).create_repository("r", "cs")
        RulesXmlLoader().load(repository, b"<rules/>")
        repository.done()
        assert repository.to_node().note is None

    @pytest.mark.parametrize(
        "data, message",
        [
            (b"<rule/>", "Expected <rules>"),
            (b"<rules><rule><name>x</name></rule></rules>", "has no <key>"),
            (b"<rules>", "Invalid rules XML"),
        ],
    )
    def test_invalid_resources(self, log, data: bytes, message: str) -> None:
        repository = SimulatedRegistrationContext(log=log).create_repository("r", "cs")
        with pytest.raises(RulesXmlError, match=message):
            RulesXmlLoader().load(repository, data)


class TestLanguageDetection:
    def test_declared_languages(self) -> None:
        assert declared_languages(PerLanguage()) == ["vbnet", "cs"]
        assert declared_languages(SelfIterating()) == ["cs", "vbnet"]
        assert declared_languages(TwoRules()) == []

    def test_accepts_language(self) -> None:
        assert accepts_language(PerLanguage().define)
        assert not accepts_language(TwoRules().define)
        assert accepts_language(lambda context, *rest: None)
