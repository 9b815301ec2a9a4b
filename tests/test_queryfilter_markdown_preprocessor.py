from pathlib import Path

import pytest

from queryfilter.__main__ import parse_params, resolve
from queryfilter.context import QueryContext, SortOption, Term
from queryfilter.markdown.preprocessor import MarkdownFiles, MarkdownPipeline, MarkdownPreprocessor
from queryfilter.markdown.tags.taxonomy_text import TaxonomyTextProcessor


def make_context() -> QueryContext:
  return QueryContext(
    params={'category_name': 'news', 'query-3-s': 'python', 'query-3-page': '2'},
    taxonomies={'category': [Term('news', 'News', 'Announcements')]},
    sort_options=[SortOption('date-desc', 'Newest first', 'date', 'desc')],
    site_url='https://example.org',
  )


def test_pipeline_replaces_tags():
  content = '''# Archive

@taxonomy-text :with { filterType = "category", link = true }

Results for {@taxonomy-text 3 :with { filterType = "search", prefix = "'", suffix = "'" }}, page {@taxonomy-text 3 :with { filterType = "page" }}.

@taxonomy-text 3 :with { filterType = "tag" }

```md
@taxonomy-text :with { filterType = "category" }
```
'''

  assert MarkdownPipeline(make_context()).process(content) == '''# Archive

<span class="wp-block-query-filter-taxonomy-text taxonomy-text taxonomy-text--category"><a href="https://example.org/category/news/">News</a></span>

Results for <span class="taxonomy-text-inline taxonomy-text--search">&#39;python&#39;</span>, page <span class="taxonomy-text-inline taxonomy-text--page">2</span>.



```md
@taxonomy-text :with { filterType = "category" }
```
'''


def test_pipeline_leaves_broken_tags():
  content = 'A {@taxonomy-text foo} and {@taxonomy-text :with { filterType = "author" }} and \\{@taxonomy-text}.'
  assert MarkdownPipeline(make_context()).process(content) == \
    'A {@taxonomy-text foo} and {@taxonomy-text :with { filterType = "author" }} and {@taxonomy-text}.'


def test_pipeline_renders_inline_formats_with_default_query_id():
  pipeline = MarkdownPipeline(make_context())
  processor = pipeline.preprocessor('taxonomy-text')
  assert isinstance(processor, TaxonomyTextProcessor)
  processor.query_id = 3

  content = '<p><span class="taxonomy-text-inline" data-query-filter-text="{&quot;filterType&quot;:&quot;search&quot;}">' \
    'taxonomy searched term title</span> / {@taxonomy-text :with { filterType = "page", prefix = "p. " }}</p>'
  assert pipeline.process(content) == \
    '<p><span class="taxonomy-text-inline taxonomy-text--search">python</span> / ' \
    '<span class="taxonomy-text-inline taxonomy-text--page">p. 2</span></p>'


class UppercaseProcessor(MarkdownPreprocessor):

  def process_files(self, files: MarkdownFiles) -> None:
    for file in files:
      file.content = file.content.upper()


def test_pipeline_use():
  pipeline = MarkdownPipeline(make_context())
  pipeline.use(UppercaseProcessor(pipeline, 'upper'))
  assert list(pipeline.processors) == ['taxonomy-text', 'upper']
  assert pipeline.process('{@taxonomy-text :with { filterType = "category" }}') == \
    '<SPAN CLASS="TAXONOMY-TEXT-INLINE TAXONOMY-TEXT--CATEGORY">NEWS</SPAN>'

  with pytest.raises(ValueError):
    pipeline.use(UppercaseProcessor(pipeline, 'upper'))
  with pytest.raises(TypeError):
    pipeline.use(object())  # type: ignore[arg-type]


def test_pipeline_execute(tmp_path: Path):
  source = tmp_path / 'docs'
  (source / 'blog').mkdir(parents=True)
  (source / 'index.md').write_text('# {@taxonomy-text :with { filterType = "category" }}\n')
  (source / 'blog' / 'page.html').write_text('<p>{@taxonomy-text :with { filterType = "category", valueType = "description" }}</p>')
  (source / 'notes.txt').write_text('{@taxonomy-text :with { filterType = "category" }}')

  output = tmp_path / 'build'
  written = MarkdownPipeline(make_context()).execute([source], output)

  assert sorted(written) == [output / 'blog' / 'page.html', output / 'index.md']
  assert (output / 'index.md').read_text() == \
    '# <span class="taxonomy-text-inline taxonomy-text--category">News</span>\n'
  assert (output / 'blog' / 'page.html').read_text() == \
    '<p><span class="taxonomy-text-inline taxonomy-text--category">Announcements</span></p>'
  assert not (output / 'notes.txt').exists()


def test_pipeline_execute_in_place_only_writes_changed_files(tmp_path: Path):
  changed = tmp_path / 'changed.md'
  changed.write_text('{@taxonomy-text :with { filterType = "category" }}')
  unchanged = tmp_path / 'unchanged.md'
  unchanged.write_text('Nothing to see here.')

  written = MarkdownPipeline(make_context()).execute([changed, unchanged])
  assert written == [changed]
  assert changed.read_text() == '<span class="taxonomy-text-inline taxonomy-text--category">News</span>'


def test_parse_params():
  assert parse_params(['s=python', 'query-3-page=2=3']) == {'s': 'python', 'query-3-page': '2=3'}
  with pytest.raises(ValueError):
    parse_params(['s'])


def test_resolve():
  assert resolve('{"filterType": "search"}', make_context(), 3) == \
    '{"text": "python", "url": null, "filter_type": "search"}'
  assert resolve('{"filterType": "tag"}', make_context(), None) == 'null'
