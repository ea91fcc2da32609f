"""Loader for rule definitions embedded as XML resources.

Expected format::

    <rules>
      <rule>
        <key>ruleA</key>
        <name>Rule A</name>
        <internalKey>ruleA</internalKey>
        <severity>MAJOR</severity>
        <description>Optional HTML description</description>
        <tag>bug</tag>
      </rule>
    </rules>
"""

import xml.etree.ElementTree as ET
from typing import Any, BinaryIO


class RulesXmlError(ValueError):
    """Raised when a rules resource cannot be parsed."""


class RulesXmlLoader:
    """Feeds rules from an XML resource into a repository being registered."""

    def load(self, repository: Any, stream: BinaryIO | bytes, encoding: str = "utf-8") -> int:
        """Create one rule in ``repository`` per ``<rule>`` element.

        Args:
            repository: Repository returned by ``create_repository``
            stream: Binary stream or bytes holding the rules XML
            encoding: Text encoding of the resource

        Returns:
            Number of rules created

        Raises:
            RulesXmlError: If the XML is malformed or a rule has no key
        """
        data = stream if isinstance(stream, bytes) else stream.read()
        try:
            root = ET.fromstring(data.decode(encoding))
        except (ET.ParseError, UnicodeDecodeError) as e:
            raise RulesXmlError(f"Invalid rules XML: {e}")

        if root.tag != "rules":
            raise RulesXmlError(f"Expected <rules> root element, found <{root.tag}>")

        mark_loaded = getattr(repository, "mark_resource_loaded", None)
        if callable(mark_loaded):
            mark_loaded()

        count = 0
        for index, element in enumerate(root.findall("rule")):
            key = _text(element, "key")
            if not key:
                raise RulesXmlError(f"Rule #{index + 1} has no <key>")

            rule = repository.create_rule(key)
            name = _text(element, "name")
            if name is not None:
                rule.set_name(name)
            rule.set_internal_key(_text(element, "internalKey") or _text(element, "configKey") or key)
            severity = _text(element, "severity")
            if severity:
                rule.set_severity(severity.upper())
            description = _text(element, "description")
            if description is not None:
                rule.set_html_description(description)
            tags = [t.text.strip() for t in element.findall("tag") if t.text and t.text.strip()]
            if tags:
                rule.add_tags(*tags)
            count += 1

        return count


def _text(element: ET.Element, tag: str) -> str | None:
    child = element.find(tag)
    if child is None or child.text is None:
        return None
    return child.text.strip()
