"""HTML sanitization for user-supplied text, applied before validation."""
from bs4 import BeautifulSoup, NavigableString
from bs4.formatter import HTMLFormatter

# Formatting tags allowed in note content; every attribute is dropped
ALLOWED_CONTENT_TAGS = frozenset(
    {"p", "br", "strong", "em", "u", "ol", "ul", "li", "blockquote", "code", "pre"},
)
# Elements whose text is dropped along with the tags
DROP_CONTENT_TAGS = ["script", "style", "iframe", "object", "template"]
# Elements that end a line of text when markup is flattened
BLOCK_TAGS = ["p", "br", "li", "blockquote", "pre", "ol", "ul"]


def _escape_text(data: str) -> str:
    return data.replace("&", "&amp;").replace("<", "&lt;")


# '>' stays as typed so markdown quotes survive; void tags render as <br>
CONTENT_FORMATTER = HTMLFormatter(
    entity_substitution=_escape_text,
    void_element_close_prefix=None,
)


def _parse(value: str) -> BeautifulSoup:
    """Parse a fragment and remove dangerous elements, comments and declarations."""
    soup = BeautifulSoup(value, "html.parser")
    for tag in soup.find_all(DROP_CONTENT_TAGS):
        if not tag.decomposed:
            tag.decompose()
    for node in soup.find_all(string=True):
        if type(node) is not NavigableString:
            node.extract()
    return soup


def sanitize_text(value: str) -> str:
    """Strip every HTML tag, returning plain text."""
    if "<" not in value and "&" not in value:
        return value
    return _parse(value).get_text()


def plain_text(value: str) -> str:
    """Strip every HTML tag, keeping block boundaries as newlines and unescaping entities."""
    if "<" not in value and "&" not in value:
        return value
    soup = _parse(value)
    for tag in soup.find_all(BLOCK_TAGS):
        tag.insert_after("\n")
    return soup.get_text()


def sanitize_html(value: str) -> str:
    """Keep only basic formatting tags (without attributes) and escape the rest."""
    if "<" not in value and "&" not in value:
        return value
    soup = _parse(value)
    for tag in soup.find_all(True):
        if tag.name in ALLOWED_CONTENT_TAGS:
            tag.attrs = {}
        else:
            tag.unwrap()
    return soup.decode(formatter=CONTENT_FORMATTER)
