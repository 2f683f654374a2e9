"""
Hypermedia link extraction - pluggable per response media type.

Each extractor exposes extract_links(body) -> [Link]. Media types without a
registered extractor get NoLinkExtractor, whose hypermedia flag tells the
normalizer to skip link checks entirely.

Usage:
    extractor = extractor_for('application/hal+json')
    rels = {link.rel for link in extractor.extract_links(payload)}
"""

from typing import Any, Dict, List, Mapping, NamedTuple, Optional


class Link(NamedTuple):
    """One link relation found in a payload."""
    rel: str
    href: Optional[str]


class LinkExtractor:
    """Base strategy. Subclasses read links out of a decoded payload."""
    hypermedia = True

    def extract_links(self, body: Any) -> List[Link]:
        raise NotImplementedError


class HalLinkExtractor(LinkExtractor):
    """
    HAL: {"_links": {"self": {"href": ...}, "item": [{"href": ...}, ...]}}
    """

    def extract_links(self, body: Any) -> List[Link]:
        if not isinstance(body, dict):
            return []
        section = body.get('_links')
        if not isinstance(section, dict):
            return []

        links = []
        for rel, value in section.items():
            entries = value if isinstance(value, list) else [value]
            for entry in entries:
                href = entry.get('href') if isinstance(entry, dict) else None
                links.append(Link(rel, href))
        return links


class AtomLinkExtractor(LinkExtractor):
    """
    Atom-style JSON: {"links": [{"rel": "self", "href": ...}, ...]}
    """

    def extract_links(self, body: Any) -> List[Link]:
        if not isinstance(body, dict):
            return []
        section = body.get('links')
        if not isinstance(section, list):
            return []
        return [
            Link(entry['rel'], entry.get('href'))
            for entry in section
            if isinstance(entry, dict) and entry.get('rel')
        ]


class NoLinkExtractor(LinkExtractor):
    """For payloads that carry no hypermedia."""
    hypermedia = False

    def extract_links(self, body: Any) -> List[Link]:
        return []


NO_LINKS = NoLinkExtractor()

DEFAULT_LINK_EXTRACTORS: Dict[str, LinkExtractor] = {
    'application/hal+json': HalLinkExtractor(),
    'application/vnd.hal+json': HalLinkExtractor(),
}


def extractor_for(
    media_type: Optional[str],
    extractors: Optional[Mapping[str, LinkExtractor]] = None,
) -> LinkExtractor:
    """Pick the extractor registered for a media type (NO_LINKS if none)."""
    if not media_type:
        return NO_LINKS
    registry = DEFAULT_LINK_EXTRACTORS if extractors is None else extractors
    return registry.get(media_type, NO_LINKS)
