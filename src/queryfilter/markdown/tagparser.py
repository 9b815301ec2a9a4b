""" Utilities for parsing tags in Markdown files.

A block tag is an identifier preceeded by an `@` (at) character at the start of a line that is not inside a
Markdown code block. An inline tag is wrapped in `{@` and `}` and can appear anywhere in the text. Both kinds of
tags take TOML-style options after the `:with` keyword.

```md
# Posts

@taxonomy-text :with { filterType = "category", link = true }

You searched for {@taxonomy-text 3 :with { filterType = "search", prefix = "“", suffix = "”" }}.
```

The arguments of block tags can encompass multiple lines if sub-sequently indented until the next blank line or
a deindentation is found.

```md
@taxonomy-text 3
  :with
  filterType = "page"
  prefix = "Page "
```
"""

from __future__ import annotations

import itertools
import logging
import re
import typing as t

import typing_extensions as te

#: Function signature for replacing tags found in Markdown files. If an iterable of strings is returned,
#: the strings will be concatenated by newlines. If `None` is returned, the tag is left untouched.
ReplacementFunc: te.TypeAlias = 't.Callable[[Tag], str | t.Iterable[str] | None]'

TAG_BEGIN = r'\\?\{@([\w\d_\-]+)\b'

logger = logging.getLogger(__name__)


class Tag(t.NamedTuple):
  name: str
  args: str
  options: dict[str, t.Any]
  offset_span: tuple[int, int]
  line_span: tuple[int, int]


def parse_inline_tags(content: str, name: str | None = None) -> t.Iterator[Tag]:
  """ Parses all inline tags encountered in *content*, optionally only those with the given *name*. An inline tag
  starts with the sequence `{@` (curly brace open, at) followed by the tag name and arguments and closed with `}`
  (curly brace closed). The tag may span over multiple lines. To encode a curly brace in the arguments _before_
  the `:with` statement, escape it with a backslash. A tag that contains another unescaped tag or that is not
  closed is skipped.

  __Example__

      {@taxonomy-text :with { filterType = "sort", prefix = "Sorted by " }}
  """

  from io import StringIO

  from nr.util.parsing import Scanner

  scanner = Scanner(content)

  def _parse_args() -> str | None:
    """ Parse until the closing curly brace is found. After the `:with` keyword, opening curly braces must be
    matched with a closing one first so that TOML inline tables can be used. """

    args = StringIO()
    in_with = False
    braces_to_close = 1

    while scanner:
      if not in_with and (match := scanner.match(r'\s:with\b')):
        in_with = True
        args.write(match.group(0))
        continue

      elif not in_with and scanner.match(r'\\}'):
        args.write('}')
        continue

      elif (match := scanner.match(TAG_BEGIN)):
        if match.group(0).startswith('\\'):
          args.write(match.group(0)[1:])
          continue
        else:
          return None

      elif scanner.char == '}':
        braces_to_close -= 1
        if braces_to_close == 0:
          scanner.next()
          break

      elif in_with and scanner.char == '{':
        braces_to_close += 1

      args.write(scanner.char)
      scanner.next()

    if braces_to_close > 0:
      return None

    return args.getvalue()

  while scanner:
    pos = scanner.pos
    match = scanner.match(TAG_BEGIN)
    if not match:
      scanner.next()
      continue

    if match.group(0).startswith('\\'):
      continue

    tag_name = match.group(1)
    args = _parse_args()
    if args is None:
      scanner.pos = pos
      scanner.seek(len(tag_name), 'cur')
      continue

    if name is not None and tag_name != name:
      continue

    split = _split_options(tag_name, args)
    if split is None:
      continue
    args, options = split

    yield Tag(
      tag_name,
      args,
      options,
      (pos.offset, scanner.pos.offset),
      (pos.line, scanner.pos.line),
    )


def parse_block_tags(content: str | t.Sequence[str], name: str | None = None) -> t.Iterator[Tag]:
  """ Parses all block tags encountered in *content*, optionally only those with the given *name*. A block tag
  is a line starting with an `@` (at) symbol followed by the tag name and arguments, which may span over the
  following lines if indented. Lines inside fenced code blocks are ignored. """

  from nr.util.iter import SequenceWalker

  if isinstance(content, str):
    content = content.splitlines()

  lines = SequenceWalker(content)
  in_code_block = False
  offsets = list(itertools.accumulate(map(lambda l: len(l) + 1, content)))
  offsets.insert(0, 0)

  for line in lines.safe_iter():

    if line.startswith('```'):
      in_code_block = not in_code_block
      lines.advance()
      continue

    match = re.match(r'^@([\w_\-]+)', line)
    if in_code_block or not match:
      lines.advance()
      continue

    tag_name = match.group(1)
    args = line[match.end():]
    start_lineno = end_lineno = lines.index

    indent = None
    while lines.has_next() and (line := lines.next()):
      if not line.strip():
        break
      match = re.match(r'^(\s+)', line)
      if not match or (indent is not None and len(match.group(1)) < indent):
        break
      if indent is None:
        indent = len(match.group(1))
      args += '\n' + line[indent:]
      end_lineno += 1
    else:
      lines.advance()

    if name is not None and tag_name != name:
      continue

    split = _split_options(tag_name, args)
    if split is None:
      continue
    args, options = split

    yield Tag(
      tag_name,
      args,
      options,
      (offsets[start_lineno], offsets[end_lineno+1] - 1),
      (start_lineno, end_lineno),
    )


def _split_options(tag_name: str, args: str) -> tuple[str, dict[str, t.Any]] | None:
  """ Splits the TOML options after the `:with` keyword from *args*. Returns `None` if they can not be parsed. """

  args, _, options_string = args.partition(':with')
  if not options_string.strip():
    return args, {}
  try:
    return args, parse_options(options_string)
  except ValueError as exc:
    logger.warning('Invalid options for tag <fg=cyan>@%s</fg>: %s', tag_name, exc)
    return None


def replace_tags(content: str, tags: t.Iterable[Tag], repl: ReplacementFunc) -> str:
  """ Replaces all *tags* in *content* by the text that *repl* returns. """

  from nr.util.text import substitute_ranges

  ranges = []
  for tag in tags:
    replacement = repl(tag)
    if replacement is None:
      continue
    if isinstance(replacement, str):
      replacement = [replacement]
    ranges.append((tag.offset_span[0], tag.offset_span[1], '\n'.join(replacement)))

  return substitute_ranges(content, ranges)


def parse_options(options: str) -> dict[str, t.Any]:
  """ Parses options formatted as TOML. Inline tables may be used without additional wrapping.

  Examples:

  * `filterType = "tag"` &rarr; Returns `{ "filterType": "tag" }`
  * `{ filterType = "page", showAfterFirstPage = false }` &rarr; Returns
    `{ "filterType": "page", "showAfterFirstPage": false }`
  """

  import tomli
  options = options.strip()

  if options.startswith('{'):
    mapping = tomli.loads(f'a = [{options}]')
    return mapping.popitem()[1][0]
  elif options.startswith('['):
    raise ValueError('option string cannot start with `[`')
  else:
    return tomli.loads(options)
