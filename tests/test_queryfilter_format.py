from queryfilter.context import BlockContext, QueryContext, Term
from queryfilter.format import (
  ATTRIBUTE_KEY,
  FORMAT_NAME,
  Format,
  FormatRange,
  RichTextValue,
  apply_format,
  find_format_spans,
  get_placeholder_text,
  insert,
  render_inline_formats,
  to_html,
)
from queryfilter.settings import FilterType, Settings, ValueType, serialize_settings


def test_get_placeholder_text():
  assert get_placeholder_text(Settings()) == 'taxonomy tag title'
  assert get_placeholder_text(Settings(FilterType.YOAST_PRIMARY_CATEGORY, ValueType.DESCRIPTION)) == \
    'taxonomy yoast primary category description'
  assert get_placeholder_text(Settings(FilterType.PAGE, ValueType.PAGE)) == 'taxonomy page number page number'
  assert get_placeholder_text(Settings(FilterType.SEARCH, ValueType.DESCRIPTION)) == 'taxonomy searched term title'
  assert get_placeholder_text(Settings(FilterType.SORT, ValueType.PAGE)) == 'taxonomy sort page number'


def test_insert_shifts_formats():
  fmt = Format('core/bold', {})
  value = RichTextValue('ab cd', 2, 2, (FormatRange(0, 1, fmt), FormatRange(3, 5, fmt)))
  assert insert(value, 'XY') == RichTextValue('abXY cd', 4, 4, (FormatRange(0, 1, fmt), FormatRange(5, 7, fmt)))


def test_apply_format_inserts_placeholder():
  settings = Settings(FilterType.CATEGORY)
  value = apply_format(RichTextValue('Posts in ', 9, 9), settings)
  assert value.text == 'Posts in taxonomy category title'
  assert (value.start, value.end) == (9, 32)
  assert value.formats == (FormatRange(9, 32, Format(FORMAT_NAME, {ATTRIBUTE_KEY: serialize_settings(settings)})),)


def test_apply_format_to_selection():
  value = apply_format(RichTextValue('Posts in here', 9, 13), Settings(FilterType.SEARCH))
  assert value.text == 'Posts in here'
  assert [(f.start, f.end) for f in value.formats] == [(9, 13)]


def test_apply_format_replaces_active_format():
  value = apply_format(RichTextValue('Posts in ', 9, 9), Settings(FilterType.CATEGORY))
  cursor = value._replace(start=12, end=12)
  assert cursor.active_format() is not None

  value = apply_format(cursor, Settings(FilterType.TAG, link=True))
  assert value.text == 'Posts in taxonomy category title'
  assert len(value.formats) == 1
  assert (value.formats[0].start, value.formats[0].end) == (9, 32)
  assert value.formats[0].format.attributes[ATTRIBUTE_KEY] == serialize_settings(Settings(FilterType.TAG, link=True))


def test_to_html_and_find_format_spans():
  settings = Settings(FilterType.SEARCH, prefix='"')
  value = apply_format(RichTextValue('A & B ', 6, 6), settings)
  html = to_html(value)
  assert html.startswith('A &amp; B <span class="taxonomy-text-inline" data-query-filter-text="{&quot;filterType')
  assert html.endswith('">taxonomy searched term title</span>')

  spans = list(find_format_spans(html))
  assert len(spans) == 1
  assert spans[0].settings == settings
  assert spans[0].content == 'taxonomy searched term title'
  assert html[slice(*spans[0].offset_span)].startswith('<span')


def test_render_inline_formats():
  context = QueryContext(params={'category_name': 'news'}, taxonomies={'category': [Term('news', 'News')]})
  category = serialize_settings(Settings(FilterType.CATEGORY, prefix='in ')).replace('"', '&quot;')
  page = serialize_settings(Settings(FilterType.PAGE)).replace('"', '&quot;')
  content = (
    f'<p>Posts <span class="taxonomy-text-inline" data-query-filter-text="{category}">taxonomy category title</span>'
    f'<span class="taxonomy-text-inline" data-query-filter-text="{page}">taxonomy page number page number</span></p>'
  )

  assert render_inline_formats(content, BlockContext(), context) == \
    '<p>Posts <span class="taxonomy-text-inline taxonomy-text--category">in News</span></p>'


def test_render_inline_formats_with_malformed_settings():
  content = "<span data-query-filter-text='{oops'>taxonomy tag title</span>"
  context = QueryContext(params={'tag': 'a'}, taxonomies={'post_tag': [Term('a', 'Alpha')]})
  assert render_inline_formats(content, BlockContext(), context) == \
    '<span class="taxonomy-text-inline taxonomy-text--tag">Alpha</span>'


def test_render_inline_formats_with_nested_span():
  context = QueryContext(params={'category_name': 'news'}, taxonomies={'category': [Term('news', 'News')]})
  category = serialize_settings(Settings(FilterType.CATEGORY)).replace('"', '&quot;')
  content = (
    f'<p><span class="taxonomy-text-inline" data-query-filter-text="{category}">'
    'taxonomy <span class="x">category</span> title</span>!</p>'
  )
  spans = list(find_format_spans(content))
  assert len(spans) == 1
  assert spans[0].content == 'taxonomy <span class="x">category</span> title'
  assert render_inline_formats(content, BlockContext(), context) == \
    '<p><span class="taxonomy-text-inline taxonomy-text--category">News</span>!</p>'


def test_find_format_spans_skips_unclosed_span():
  category = serialize_settings(Settings(FilterType.CATEGORY)).replace('"', '&quot;')
  content = f'<p><span data-query-filter-text="{category}">taxonomy <span>category title</span></p>'
  assert list(find_format_spans(content)) == []
