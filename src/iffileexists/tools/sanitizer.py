"""
Markup sanitizer for rendered template output.

Rendered snippets are meant to be dropped straight into a page, so everything
the resolver returns or echoes goes through an allow-list filter first.
"""

from html import escape
from html.parser import HTMLParser
from typing import Dict, FrozenSet, List, Optional, Tuple
import logging
import re


logger = logging.getLogger(__name__)


GLOBAL_ATTRIBUTES = frozenset({'class', 'id', 'title', 'lang', 'dir'})

DEFAULT_ALLOWED_TAGS: Dict[str, FrozenSet[str]] = {
    'a': frozenset({'href', 'rel', 'target', 'download', 'hreflang', 'type'}),
    'abbr': frozenset(),
    'b': frozenset(),
    'blockquote': frozenset({'cite'}),
    'br': frozenset(),
    'cite': frozenset(),
    'code': frozenset(),
    'del': frozenset({'datetime'}),
    'div': frozenset(),
    'em': frozenset(),
    'figcaption': frozenset(),
    'figure': frozenset(),
    'h1': frozenset(), 'h2': frozenset(), 'h3': frozenset(),
    'h4': frozenset(), 'h5': frozenset(), 'h6': frozenset(),
    'i': frozenset(),
    'img': frozenset({'src', 'alt', 'width', 'height'}),
    'ins': frozenset({'datetime'}),
    'li': frozenset(),
    'ol': frozenset({'start'}),
    'p': frozenset(),
    'pre': frozenset(),
    'q': frozenset({'cite'}),
    's': frozenset(),
    'small': frozenset(),
    'span': frozenset(),
    'strong': frozenset(),
    'sub': frozenset(),
    'sup': frozenset(),
    'time': frozenset({'datetime'}),
    'u': frozenset(),
    'ul': frozenset(),
}

# Elements dropped together with everything inside them
DROP_CONTENT_TAGS = frozenset({'script', 'style'})

URL_ATTRIBUTES = frozenset({'href', 'src', 'cite'})
ALLOWED_PROTOCOLS = frozenset({'http', 'https', 'ftp', 'mailto'})

VOID_TAGS = frozenset({'br', 'img'})

_SCHEME_RE = re.compile(r'^([a-z][a-z0-9+.\-]*):', re.IGNORECASE)
_CONTROL_RE = re.compile(r'[\x00-\x20\x7f]+')


class MarkupSanitizer(HTMLParser):
    """
    Allow-list HTML filter.

    Allowed tags are re-emitted with their allowed attributes only; any other
    tag is removed but its text is kept, escaped. Script and style elements
    are removed along with their content. Entities are passed through untouched.
    """

    def __init__(self, allowed_tags: Optional[Dict[str, FrozenSet[str]]] = None,
                 allowed_protocols: FrozenSet[str] = ALLOWED_PROTOCOLS):
        super().__init__(convert_charrefs=False)
        self.allowed_tags = DEFAULT_ALLOWED_TAGS if allowed_tags is None else allowed_tags
        self.allowed_protocols = allowed_protocols
        self._parts: List[str] = []
        self._skip_depth = 0

    def sanitize(self, text: str) -> str:
        """
        Strip disallowed markup from a string.

        Args:
            text: Markup to filter

        Returns:
            Filtered markup
        """
        if not text or ('<' not in text and '&' not in text):
            return text

        self.reset()
        self._parts = []
        self._skip_depth = 0
        self.feed(text)

        # An unterminated trailing tag would otherwise be flushed as text by close()
        if self.rawdata.startswith('<'):
            logger.debug(f"Sanitizer dropped unterminated markup: {self.rawdata!r}")
            self.rawdata = ''
        self.close()
        result = ''.join(self._parts)
        self._parts = []

        if result != text:
            logger.debug(f"Sanitizer removed markup: {text!r} -> {result!r}")
        return result

    __call__ = sanitize

    def handle_starttag(self, tag: str, attrs: List[Tuple[str, Optional[str]]]) -> None:
        if tag in DROP_CONTENT_TAGS:
            self._skip_depth += 1
            return
        if self._skip_depth or tag not in self.allowed_tags:
            return
        self._parts.append(self._build_tag(tag, attrs, self_closing=False))

    def handle_startendtag(self, tag: str, attrs: List[Tuple[str, Optional[str]]]) -> None:
        if self._skip_depth or tag not in self.allowed_tags:
            return
        self._parts.append(self._build_tag(tag, attrs, self_closing=True))

    def handle_endtag(self, tag: str) -> None:
        if tag in DROP_CONTENT_TAGS:
            if self._skip_depth:
                self._skip_depth -= 1
            return
        if self._skip_depth or tag not in self.allowed_tags or tag in VOID_TAGS:
            return
        self._parts.append(f"</{tag}>")

    def handle_data(self, data: str) -> None:
        if not self._skip_depth:
            self._parts.append(escape(data, quote=False))

    def handle_entityref(self, name: str) -> None:
        if not self._skip_depth:
            self._parts.append(f"&{name};")

    def handle_charref(self, name: str) -> None:
        if not self._skip_depth:
            self._parts.append(f"&#{name};")

    # Comments, doctypes and processing instructions are dropped.
    def handle_comment(self, data: str) -> None:
        pass

    def handle_decl(self, decl: str) -> None:
        pass

    def handle_pi(self, data: str) -> None:
        pass

    def unknown_decl(self, data: str) -> None:
        pass

    def _build_tag(self, tag: str, attrs: List[Tuple[str, Optional[str]]], self_closing: bool) -> str:
        allowed = self.allowed_tags[tag] | GLOBAL_ATTRIBUTES
        rendered = []
        for name, value in attrs:
            if name not in allowed or name.startswith('on'):
                continue
            if value is None:
                rendered.append(f" {name}")
                continue
            if name in URL_ATTRIBUTES and not self._is_allowed_url(value):
                logger.debug(f"Dropping {tag}[{name}] with disallowed URL: {value!r}")
                continue
            rendered.append(f' {name}="{escape(value, quote=True)}"')

        closing = ' /' if self_closing else ''
        return f"<{tag}{''.join(rendered)}{closing}>"

    def _is_allowed_url(self, value: str) -> bool:
        """Relative URLs pass, absolute ones need an allowed scheme."""
        match = _SCHEME_RE.match(_CONTROL_RE.sub('', value))
        if not match:
            return True
        return match.group(1).lower() in self.allowed_protocols


def sanitize_markup(text: str) -> str:
    """
    Sanitize markup with the default allow-list.

    Args:
        text: Markup to filter

    Returns:
        Filtered markup
    """
    return MarkupSanitizer().sanitize(text)
