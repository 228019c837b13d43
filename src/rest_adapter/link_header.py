"""
Link header parsing for relation-based pagination
"""

from typing import Dict, Optional

from requests.utils import parse_header_links


def parse_links(header_value: Optional[str]) -> Dict[str, str]:
    """
    Build the relation -> URL map for a Link header

    Args:
        header_value: Raw header, e.g. '<https://x/a?page=2>; rel="next"'

    Returns:
        Mapping of relation name to URL; the first entry wins for a repeated relation
    """
    links: Dict[str, str] = {}
    if not header_value or not header_value.strip():
        return links

    # parse_header_links stops reading an entry's parameters at the first value
    # containing '=', so a rel listed after such a parameter is not seen
    for link in parse_header_links(header_value):
        rel = link.get('rel')
        url = link.get('url')
        if rel and url and rel not in links:
            links[rel] = url

    return links


def parse_link_header(header_value: Optional[str], relation: str) -> Optional[str]:
    """
    Resolve one relation of a Link header to its URL

    Args:
        header_value: Raw Link header, may be None or empty
        relation: Relation to look up (exact, case-sensitive match)

    Returns:
        URL of the first entry with that relation, or None
    """
    return parse_links(header_value).get(relation)
