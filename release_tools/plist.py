"""Reading and editing XML property lists with lxml."""

from pathlib import Path
from typing import Optional

from lxml import etree  # type: ignore[import]


class PlistError(Exception):
    pass


def parse_plist(path: Path) -> "etree._ElementTree":
    """Parse an XML plist whose root holds a top-level <dict>"""
    parser = etree.XMLParser(remove_blank_text=True, resolve_entities=False, no_network=True)
    try:
        tree = etree.parse(str(path), parser)
    except (OSError, etree.XMLSyntaxError) as e:
        raise PlistError(f"could not parse {path.name}: {e}") from e

    root = tree.getroot()
    if root.tag != "plist" or top_level_dict(tree) is None:
        raise PlistError(f"{path.name} is not a dictionary plist")
    return tree


def top_level_dict(tree: "etree._ElementTree") -> Optional["etree._Element"]:
    return tree.getroot().find("dict")


def _value_element(info: "etree._Element", key: str) -> Optional["etree._Element"]:
    # A plist <dict> alternates <key> elements with their values
    for element in info.iterchildren("key"):
        if element.text == key:
            return element.getnext()
    return None


def get_string(info: "etree._Element", key: str) -> Optional[str]:
    """Return the value of a string or integer key, or None"""
    value = _value_element(info, key)
    if value is None or value.tag not in ("string", "integer"):
        return None
    return (value.text or "").strip()


def set_string(info: "etree._Element", key: str, value: str) -> None:
    """Set a key to a <string> value, replacing whatever it held before"""
    existing = _value_element(info, key)
    new_value = etree.Element("string")
    new_value.text = value
    if existing is not None:
        info.replace(existing, new_value)
    else:
        key_element = etree.SubElement(info, "key")
        key_element.text = key
        info.append(new_value)


def write_plist(tree: "etree._ElementTree", path: Path) -> None:
    tree.write(str(path), encoding="UTF-8", xml_declaration=True, pretty_print=True)
