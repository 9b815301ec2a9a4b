""" The taxonomy text inline format. In rich text, the format is a `<span>` that carries the serialized #Settings in
its `data-query-filter-text` attribute and a placeholder as its content:

```html
Showing <span class="taxonomy-text-inline" data-query-filter-text="{&quot;filterType&quot;:&quot;category&quot;,...}">taxonomy category title</span>
```

When content is rendered, the placeholder is replaced with the resolved text.
"""

from __future__ import annotations

import html
import logging
import re
import typing as t

from queryfilter.context import BlockContext, QueryContext
from queryfilter.settings import (
  FILTER_OPTIONS,
  TITLE_ONLY_FILTER_TYPES,
  VALUE_TYPE_OPTIONS,
  Settings,
  ValueType,
  get_option_label,
  parse_settings,
  serialize_settings,
)

if t.TYPE_CHECKING:
  from queryfilter.render import TaxonomyTextRenderer

logger = logging.getLogger(__name__)

FORMAT_NAME = 'query-filter/taxonomy-inline-text'
ATTRIBUTE_KEY = 'data-query-filter-text'
CLASS_NAME = 'taxonomy-text-inline'

_SPAN_START = re.compile(
  r'<span\b(?P<attrs>[^>]*?\b' + re.escape(ATTRIBUTE_KEY) + r'\s*=\s*(?P<quote>["\'])(?P<value>.*?)(?P=quote)[^>]*)>',
  re.S,
)

_SPAN_TAG = re.compile(r'<span\b[^>]*>|</span\s*>', re.I)


class Format(t.NamedTuple):
  type: str
  attributes: dict[str, str]


class FormatRange(t.NamedTuple):
  start: int
  end: int
  format: Format


class RichTextValue(t.NamedTuple):
  """ A minimal rich text value: plain text, a selection and the formats applied to ranges of the text. """

  text: str
  start: int
  end: int
  formats: tuple[FormatRange, ...] = ()

  @property
  def is_collapsed(self) -> bool:
    return self.start == self.end

  def active_format(self, format_type: str = FORMAT_NAME) -> Format | None:
    """ Returns the format of the given type that covers the selection, if any. """

    for item in self.formats:
      if item.format.type != format_type:
        continue
      if item.start <= self.start and self.end <= item.end and (item.start < self.end or self.is_collapsed):
        return item.format
    return None


class FormatSpan(t.NamedTuple):
  """ An inline format span found in HTML content. """

  settings: Settings
  content: str
  offset_span: tuple[int, int]


def get_placeholder_text(settings: Settings) -> str:
  """ The text inserted when the format is applied without a selection, e.g. `taxonomy category title`. """

  parts = ['taxonomy', get_option_label(FILTER_OPTIONS, settings.filter_type.value).lower()]
  if settings.filter_type in TITLE_ONLY_FILTER_TYPES and settings.value_type != ValueType.PAGE:
    value_label = 'title'
  else:
    value_label = get_option_label(VALUE_TYPE_OPTIONS, settings.value_type.value)
  parts.append(value_label.lower())
  return ' '.join(parts)


def insert(value: RichTextValue, text: str) -> RichTextValue:
  """ Replaces the selection with *text* and places the cursor after it. Format ranges are shifted accordingly. """

  delta = len(text) - (value.end - value.start)
  formats = []
  for item in value.formats:
    if item.end <= value.start:
      formats.append(item)
    elif item.start >= value.end:
      formats.append(item._replace(start=item.start + delta, end=item.end + delta))
    else:
      formats.append(item._replace(end=max(item.end + delta, value.start)))
  cursor = value.start + len(text)
  return RichTextValue(value.text[:value.start] + text + value.text[value.end:], cursor, cursor, tuple(formats))


def apply_format(value: RichTextValue, settings: Settings, is_active: bool | None = None) -> RichTextValue:
  """ Applies the taxonomy text format with the given *settings* to the selection. If the selection is collapsed
  and the format is not active at the cursor, the placeholder text is inserted and selected first. An already
  active format covering the selection is replaced. """

  if is_active is None:
    is_active = value.active_format() is not None

  if value.is_collapsed and not is_active:
    placeholder = get_placeholder_text(settings)
    value = insert(value, placeholder)
    value = value._replace(start=value.end - len(placeholder))

  fmt = Format(FORMAT_NAME, {ATTRIBUTE_KEY: serialize_settings(settings)})
  start, end = value.start, value.end
  formats = []
  for item in value.formats:
    if item.format.type == FORMAT_NAME and item.start <= end and start <= item.end and is_active:
      start, end = min(start, item.start), max(end, item.end)
      continue
    formats.append(item)
  formats.append(FormatRange(start, end, fmt))
  formats.sort(key=lambda x: x.start)
  return value._replace(formats=tuple(formats))


def to_html(value: RichTextValue) -> str:
  """ Serializes the text of *value* to HTML, rendering taxonomy text formats as spans. Other formats and
  overlapping ranges are not supported and are dropped. """

  parts = []
  pos = 0
  for item in value.formats:
    if item.format.type != FORMAT_NAME or item.start < pos:
      logger.debug('Dropping unsupported format range %r', item)
      continue
    parts.append(html.escape(value.text[pos:item.start], quote=False))
    attrs = ''.join(f' {k}="{html.escape(v)}"' for k, v in item.format.attributes.items())
    parts.append(f'<span class="{CLASS_NAME}"{attrs}>{html.escape(value.text[item.start:item.end], quote=False)}</span>')
    pos = item.end
  parts.append(html.escape(value.text[pos:], quote=False))
  return ''.join(parts)


def find_format_spans(content: str) -> t.Iterator[FormatSpan]:
  """ Finds all inline format spans in *content*. """

  pos = 0
  while (match := _SPAN_START.search(content, pos)):
    end = _find_closing_span(content, match.end())
    if end is None:
      logger.warning('Unclosed taxonomy text span at offset %d', match.start())
      pos = match.end()
      continue
    settings = parse_settings(html.unescape(match.group('value')))
    yield FormatSpan(settings, content[match.end():end[0]], (match.start(), end[1]))
    pos = end[1]


def _find_closing_span(content: str, pos: int) -> tuple[int, int] | None:
  """ Returns the span of the `</span>` that closes a span whose content starts at *pos*, taking nested spans
  into account. """

  depth = 1
  for match in _SPAN_TAG.finditer(content, pos):
    if match.group(0).startswith('</'):
      depth -= 1
      if depth == 0:
        return match.span()
    else:
      depth += 1
  return None


def render_inline_formats(
  content: str,
  block: BlockContext,
  context: QueryContext,
  renderer: TaxonomyTextRenderer | None = None,
) -> str:
  """ Replaces every inline format span in *content* with its rendered text. Spans that do not resolve to a value
  are removed. """

  from nr.util.text import substitute_ranges

  from queryfilter.render import get_default_renderer

  renderer = renderer or get_default_renderer()
  ranges = []
  for span in find_format_spans(content):
    ranges.append((span.offset_span[0], span.offset_span[1], renderer.render_inline(span.settings, block, context)))
  return substitute_ranges(content, ranges)
