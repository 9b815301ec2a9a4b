from __future__ import annotations

import logging
import typing as t

from queryfilter.context import BlockContext
from queryfilter.markdown.preprocessor import MarkdownFile, MarkdownFiles, MarkdownPreprocessor
from queryfilter.render import TaxonomyTextRenderer
from queryfilter.settings import InvalidSettingsError, Settings

if t.TYPE_CHECKING:
  from queryfilter.markdown.tagparser import Tag

logger = logging.getLogger(__name__)


class TaxonomyTextProcessor(MarkdownPreprocessor):
  """ Replaces `@taxonomy-text` block tags, `{@taxonomy-text}` inline tags and stored inline format spans with the
  text resolved from the pipeline's query context. The tag argument is the ID of the query loop to read the
  filters of; if omitted, #query_id is used. Tags that resolve to nothing are removed.

  __Options__

  Any of the block attributes: `filterType`, `valueType`, `prefix`, `suffix`, `link`, `showAfterFirstPage` and
  `className`.

  __Example__

      @taxonomy-text 3 :with { filterType = "category", link = true }

      Page {@taxonomy-text 3 :with { filterType = "page" }} of the archive.
  """

  #: The query loop ID used for tags without an argument and for inline format spans. `None` means the main query.
  query_id: int | None = None

  #: The attributes of the enclosing query block, used as a fallback for the sort and search filters.
  query: dict[str, t.Any]

  renderer: TaxonomyTextRenderer

  def __post_init__(self) -> None:
    self.query = {}
    self.renderer = TaxonomyTextRenderer()

  def process_files(self, files: MarkdownFiles) -> None:
    from queryfilter.format import render_inline_formats
    from queryfilter.markdown.tagparser import parse_block_tags, parse_inline_tags, replace_tags

    for file in files:
      tags = list(parse_block_tags(file.content, 'taxonomy-text'))
      file.content = replace_tags(file.content, tags, lambda t: self._replace_tag(files, file, t, True))
      tags = list(parse_inline_tags(file.content, 'taxonomy-text'))
      file.content = replace_tags(file.content, tags, lambda t: self._replace_tag(files, file, t, False))
      file.content = render_inline_formats(file.content, self._block_context(self.query_id), files.context, self.renderer)

  def _block_context(self, query_id: int | None) -> BlockContext:
    return BlockContext(query=dict(self.query), query_id=query_id)

  def _replace_tag(self, files: MarkdownFiles, file: MarkdownFile, tag: Tag, is_block: bool) -> str | None:
    """ Callback for #replace_tags(). Returns `None` to leave a broken tag in place. """

    args = tag.args.strip()
    if args:
      try:
        query_id: int | None = int(args)
      except ValueError:
        logger.warning(
          '<fg=cyan>@taxonomy-text</fg> expects a query ID, got <fg=yellow>%r</fg> in <fg=yellow>%s</fg>',
          args, file.path,
        )
        return None
    else:
      query_id = self.query_id

    block = self._block_context(query_id)
    try:
      if is_block:
        return self.renderer.render_block(tag.options, block, files.context)
      return self.renderer.render_inline(Settings.from_attributes(tag.options), block, files.context)
    except InvalidSettingsError as exc:
      logger.warning('<fg=cyan>@taxonomy-text</fg> in <fg=yellow>%s</fg>: %s', file.path, exc)
      return None
