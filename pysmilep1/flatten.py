# pySmileP1 Module - Markup Flattener
# -*- coding: utf-8 -*-
"""
 Parse Smile XML responses and flatten them into plain dictionaries

 Functions:
    parse_markup(markup, force_list)   # XML text -> tree (xmltodict form)
    flatten(tree, level, max_depth)    # tree -> flat dict / list
    lookup(data, keylist)              # nested get, None when missing
    text(value)                        # text payload of a leaf node

 Tree form
    Attributes are '@name' keys, element text is '#text', repeated elements
    are lists, text-only elements are scalars and empty elements are None.
    Numeric and boolean element text is converted to native Python values,
    attribute values are kept as strings.
"""
import logging
import re
from typing import Any, Iterable, Optional
from xml.parsers.expat import ExpatError

import xmltodict

from pysmilep1.exceptions import SmileParseError

log = logging.getLogger(__name__)

ATTR_PREFIX = "@"
TEXT_KEY = "#text"
VALUE_KEY = "value"
MAX_DEPTH = 10

_INT_REGEX = re.compile(r"^-?\d+$")
_FLOAT_REGEX = re.compile(r"^-?\d*\.\d+$")


def native(value: Any) -> Any:
    """Convert numeric and boolean strings to Python values"""
    if not isinstance(value, str):
        return value
    stripped = value.strip()
    if _INT_REGEX.match(stripped):
        return int(stripped)
    if _FLOAT_REGEX.match(stripped):
        return float(stripped)
    if stripped == "true":
        return True
    if stripped == "false":
        return False
    return value


def _postprocessor(path, key, value):
    # pylint: disable=unused-argument
    # attribute values stay strings, only element text is converted
    if key.startswith(ATTR_PREFIX):
        return key, value
    return key, native(value)


def parse_markup(markup: str, force_list: Optional[Iterable[str]] = None) -> dict:
    if not markup or not isinstance(markup, str):
        raise SmileParseError("Empty response, expected XML")
    try:
        return xmltodict.parse(markup, attr_prefix=ATTR_PREFIX, cdata_key=TEXT_KEY,
                               postprocessor=_postprocessor,
                               force_list=tuple(force_list) if force_list else None)
    except ExpatError as exc:
        log.error(f"Unable to parse XML response: {exc}")
        raise SmileParseError(f"Unable to parse XML response: {exc}") from exc


def lookup(data, keylist):
    """
    Lookup a value in a nested dictionary or return None if not found.
    data - nested dictionary
    keylist - list of keys to traverse
    """
    for key in keylist:
        if isinstance(data, dict):
            data = data.get(key)
        else:
            return None
    return data


def text(value: Any) -> Any:
    if isinstance(value, dict):
        return value.get(TEXT_KEY)
    return value


def _flatten_child(value: Any, level: int, max_depth: int) -> Any:
    if not isinstance(value, (dict, list)):
        return value
    if not value:
        return None
    if isinstance(value, dict) and len(value) == 1 and TEXT_KEY in value:
        return value[TEXT_KEY]
    return flatten(value, level + 1, max_depth)


def flatten(tree: Any, level: int = 1, max_depth: int = MAX_DEPTH) -> Any:
    """
    Flatten a parsed markup tree.

    Attributes are hoisted next to the child elements, the text slot of an
    element with attributes becomes 'value', empty elements become None and
    text-only elements collapse to their text. Lists are flattened element
    wise. Subtrees deeper than max_depth are returned as they are.
    """
    if level > max_depth:
        return tree
    if isinstance(tree, list):
        return [_flatten_child(item, level, max_depth) for item in tree]
    if not isinstance(tree, dict):
        return tree
    flat = {}
    for key, value in tree.items():
        if key.startswith(ATTR_PREFIX):
            flat[key[len(ATTR_PREFIX):]] = value
        elif key == TEXT_KEY:
            flat[VALUE_KEY] = value
        else:
            flat[key] = _flatten_child(value, level, max_depth)
    return flat
