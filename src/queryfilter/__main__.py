from __future__ import annotations

import argparse
import json
import logging
import sys
import textwrap
import typing as t
from pathlib import Path

from nr.util.logging.formatters.terminal_colors import TerminalColorFormatter

from queryfilter import __version__
from queryfilter.context import BlockContext, ContextError, QueryContext, load_context

logger = logging.getLogger(__name__)

CONTEXT_FILE = Path('queryfilter.yml')

TEMPLATE = '''
  site_url: https://example.org
  params:
    category_name: news
    paged: 2
  taxonomies:
    category:
      - slug: news
        name: News
        description: Announcements and release notes.
    post_tag:
      - slug: python
        name: Python
  sort_options:
    - key: date-desc
      label: Newest first
      order_by: date
      order: desc
  primary_category: news
'''


def setup_logging(verbose: bool = False) -> None:
  logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO)

  formatter = TerminalColorFormatter('%(message)s')
  assert formatter.styles
  formatter.styles.add_style('path', 'yellow')
  formatter.install()


def parse_params(values: t.Iterable[str]) -> dict[str, str]:
  """ Parses `KEY=VALUE` pairs. """

  params = {}
  for value in values:
    key, sep, param = value.partition('=')
    if not sep or not key:
      raise ValueError(f'expected KEY=VALUE, got {value!r}')
    params[key] = param
  return params


def get_argument_parser() -> argparse.ArgumentParser:
  parser = argparse.ArgumentParser(
    prog='queryfilter',
    description='Replace taxonomy text tags and inline formats in Markdown and HTML files.',
  )
  parser.add_argument(
    '--version',
    action='version',
    version=__version__,
  )
  parser.add_argument(
    '--init',
    action='store_true',
    help=f'Create a `{CONTEXT_FILE}` file with an example query context.',
  )
  parser.add_argument(
    '-c', '--context',
    type=Path,
    help=f'The query context file to load. (default: {CONTEXT_FILE} if it exists)',
    metavar='PATH',
  )
  parser.add_argument(
    '-p', '--param',
    action='append',
    default=[],
    help='Set a request query variable, overriding the one from the context file. Can be specified multiple times.',
    metavar='KEY=VALUE',
  )
  parser.add_argument(
    '-q', '--query-id',
    type=int,
    help='The query loop ID for tags that do not specify one and for inline formats.',
    metavar='ID',
  )
  parser.add_argument(
    '-o', '--output',
    type=Path,
    help='The directory to write processed files to. If not specified, files are processed in place.',
    metavar='PATH',
  )
  parser.add_argument(
    '--resolve',
    help='Resolve the given JSON-encoded settings and print the result as JSON instead of processing files.',
    metavar='JSON',
  )
  parser.add_argument(
    '-v', '--verbose',
    action='store_true',
    help='Enable debug logging.',
  )
  parser.add_argument(
    'paths',
    nargs='*',
    type=Path,
    help='Files or directories to process.',
  )
  return parser


def get_context(path: Path | None, params: dict[str, str]) -> QueryContext:
  if path is None and CONTEXT_FILE.exists():
    path = CONTEXT_FILE
  context = load_context(path) if path else QueryContext()
  context.params.update(params)
  return context


def resolve(settings_json: str, context: QueryContext, query_id: int | None) -> str:
  """ Returns the JSON encoded result of resolving *settings_json*, `null` if it does not resolve. """

  from queryfilter.resolver import get_taxonomy_text_result
  from queryfilter.settings import parse_settings

  result = get_taxonomy_text_result(parse_settings(settings_json), BlockContext(query_id=query_id), context)
  return json.dumps(result._asdict() if result else None)


def main(argv: list[str] | None = None) -> None:
  parser = get_argument_parser()
  args = parser.parse_args(argv)
  setup_logging(args.verbose)

  if args.init:
    if CONTEXT_FILE.exists():
      parser.error(f'{CONTEXT_FILE} already exists')
    CONTEXT_FILE.write_text(textwrap.dedent(TEMPLATE).lstrip())
    logger.info('Created <path>%s</path>', CONTEXT_FILE)
    return

  try:
    params = parse_params(args.param)
  except ValueError as exc:
    parser.error(str(exc))

  try:
    context = get_context(args.context, params)
  except ContextError as exc:
    logger.error('<fg=red>%s</fg>', exc)
    sys.exit(1)

  if args.resolve is not None:
    print(resolve(args.resolve, context, args.query_id))
    return

  if not args.paths:
    parser.error('no paths specified')

  from queryfilter.markdown.preprocessor import MarkdownPipeline

  pipeline = MarkdownPipeline(context)
  pipeline.preprocessor('taxonomy-text').query_id = args.query_id  # type: ignore[attr-defined]
  written = pipeline.execute(args.paths, args.output)
  logger.info('Wrote %d file(s)', len(written))


if __name__ == '__main__':
  main()
