from pathlib import Path

from queryfilter.context import BlockContext, QueryContext, Term
from queryfilter.render import (
  TaxonomyTextRenderer,
  esc_url,
  get_default_renderer,
  render_block,
  render_inline,
  sanitize_html_class,
)
from queryfilter.settings import FilterType, Settings

CONTEXT = QueryContext(
  params={'query-3-category': 'news', 'query-3-post_tag': 'q-and-a', 'query-3-s': '<script>'},
  taxonomies={
    'category': [Term('news', 'News')],
    'post_tag': [Term('q-and-a', 'Q&A', link='https://example.org/?tag=q&page=1')],
  },
  site_url='https://example.org',
)

BLOCK = BlockContext(query_id=3)


def test_render_block_with_link():
  assert render_block({'filterType': 'category', 'link': True, 'prefix': 'In '}, BLOCK, CONTEXT) == (
    '<span class="wp-block-query-filter-taxonomy-text taxonomy-text taxonomy-text--category">'
    '<a href="https://example.org/category/news/">In News</a></span>'
  )


def test_render_block_without_link():
  assert render_block({'filterType': 'category', 'className': 'is-style-large'}, BLOCK, CONTEXT) == (
    '<span class="wp-block-query-filter-taxonomy-text taxonomy-text taxonomy-text--category is-style-large">'
    'News</span>'
  )


def test_render_block_escapes_text_and_url():
  assert render_block({'filterType': 'tag', 'link': True}, BLOCK, CONTEXT) == (
    '<span class="wp-block-query-filter-taxonomy-text taxonomy-text taxonomy-text--tag">'
    '<a href="https://example.org/?tag=q&amp;page=1">Q&amp;A</a></span>'
  )
  assert render_block({'filterType': 'search', 'link': True}, BLOCK, CONTEXT) == (
    '<span class="wp-block-query-filter-taxonomy-text taxonomy-text taxonomy-text--search">&lt;script&gt;</span>'
  )


def test_render_block_unresolved():
  assert render_block({'filterType': 'page'}, BLOCK, CONTEXT) == ''
  assert render_block({'filterType': 'tag'}, BlockContext(query_id=4), CONTEXT) == ''


def test_render_inline():
  settings = Settings(FilterType.CATEGORY, suffix=' posts', link=True)
  assert render_inline(settings, BLOCK, CONTEXT) == (
    '<span class="taxonomy-text-inline taxonomy-text--category">'
    '<a href="https://example.org/category/news/">News posts</a></span>'
  )
  assert render_inline(settings, BlockContext(), CONTEXT) == ''


def test_render_with_custom_template(tmp_path: Path):
  (tmp_path / 'taxonomy_text.html.jinja').write_text('<em>{{ result.text }}</em>')
  renderer = TaxonomyTextRenderer(directories=[str(tmp_path)])
  assert renderer.render_block({'filterType': 'category'}, BLOCK, CONTEXT) == '<em>News</em>'


def test_sanitize_html_class():
  assert sanitize_html_class('yoast_primary_category') == 'yoast_primary_category'
  assert sanitize_html_class('a b%20c!"') == 'abc'


def test_esc_url():
  assert esc_url(None) == ''
  assert esc_url(' https://example.org/tag/a/ ') == 'https://example.org/tag/a/'
  assert esc_url('/tag/a/') == '/tag/a/'
  assert esc_url('mailto:editor@example.org') == 'mailto:editor@example.org'
  assert esc_url('javascript:alert(1)') == ''
  assert esc_url('http://[broken/') == ''


def test_render_block_with_malformed_link():
  term = Term('news', 'News', link='http://[broken/')
  context = QueryContext(params={'category_name': 'news'}, taxonomies={'category': [term]})
  assert render_block({'filterType': 'category', 'link': True}, BlockContext(), context) == (
    '<span class="wp-block-query-filter-taxonomy-text taxonomy-text taxonomy-text--category">News</span>'
  )


def test_default_renderer_is_reused():
  assert get_default_renderer() is get_default_renderer()
