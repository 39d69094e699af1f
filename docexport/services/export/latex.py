# docexport/services/export/latex.py
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import re
from datetime import date, datetime
from typing import Iterable, List, Mapping, Optional, Sequence, Union

from ...models.document import AuditEntry, ExportFormat, StructureNode


DOCUMENT_PREAMBLE = r"""
\documentclass{article}
\usepackage[utf8]{inputenc}
\usepackage{graphicx}
\usepackage{amsmath}
\usepackage{booktabs}
\usepackage{hyperref}
\usepackage{caption}
\usepackage{longtable}
\usepackage{biblatex}
\addbibresource{references.bib}

\title{<<TITLE>>}
\date{<<DATE>>}

\begin{document}
\maketitle
""".strip()

DOCUMENT_CLOSING = r"""
\newpage
\printbibliography
\end{document}
""".strip()

NO_AUDIT_ENTRIES = "There are no entries in the audit log."

AUDIT_COLUMNS = ("Tool", "Usage", "Affected parts", "Remarks", "Created", "Updated")

# Heading commands by tree depth; deeper levels reuse the last one.
HEADING_COMMANDS = ("section", "subsection", "subsubsection", "paragraph", "subparagraph")

_LATEX_ESCAPES = {
    "\\": r"\textbackslash{}",
    "_": r"\_",
    "%": r"\%",
    "&": r"\&",
    "#": r"\#",
    "$": r"\$",
    "{": r"\{",
    "}": r"\}",
    "^": r"\^{}",
    "~": r"\~{}",
}
_ESCAPE_TABLE = str.maketrans(_LATEX_ESCAPES)
_UNESCAPES = {v: k for k, v in _LATEX_ESCAPES.items()}
_UNESCAPE_RE = re.compile(
    r"\\textbackslash\{\}|\\\^\{\}|\\~\{\}|\\[_%&#${}]"
)

_FIGURE_RE = re.compile(r"\[FIGURE:([^:\]]+):([^\]]+)\]")
_TABLE_RE = re.compile(r"\[TABLE:([^:\]]+):(.*?)\]", re.DOTALL)
_CITE_RE = re.compile(r"\[CITE:([^\]]+)\]")
# Author-typed "\$" after escaping.
_ESCAPED_BACKSLASH_DOLLAR_RE = re.compile(r"\\textbackslash\{\}\\\$")

_TABLE_TAG_RE = re.compile(r"</?table>")
_ROW_TAG_RE = re.compile(r"</?tr>")
_CELL_TAG_RE = re.compile(r"</?td>")


# ------------------------------- Escaping --------------------------------


def escape_latex(text: str) -> str:
    """
    Make arbitrary text safe for LaTeX. Each special character is replaced in a
    single pass, so inserted sequences are never escaped again.
    Not idempotent: apply once per run of text.
    """
    return (text or "").translate(_ESCAPE_TABLE)


def unescape_latex(text: str) -> str:
    """Inverse of escape_latex for text that went through it exactly once."""
    return _UNESCAPE_RE.sub(lambda m: _UNESCAPES[m.group(0)], text)


# ---------------------------- Rich content ------------------------------


def parse_table_rows(table_html: str) -> List[List[str]]:
    """
    Turn the html-like payload of a [TABLE:...] token into a grid of cells.
    Wrapper tags are stripped, cells trimmed, empty cells and rows dropped.
    """
    body = _TABLE_TAG_RE.sub("", table_html)
    rows: List[List[str]] = []
    for raw_row in body.split("</tr>"):
        raw_row = _ROW_TAG_RE.sub("", raw_row)
        cells = [_CELL_TAG_RE.sub("", cell).strip() for cell in raw_row.split("</td>")]
        cells = [c for c in cells if c]
        if cells:
            rows.append(cells)
    return rows


def render_figure(caption: str, url: str) -> str:
    return "\n".join([
        r"\begin{figure}[h]",
        r"\centering",
        rf"\includegraphics[width=0.8\textwidth]{{{url}}}",
        rf"\caption{{{caption}}}",
        r"\end{figure}",
    ])


def render_table(caption: str, rows: Sequence[Sequence[str]]) -> str:
    columns = len(rows[0]) if rows else 1
    body = "\n".join(" & ".join(row) + r" \\ \hline" for row in rows)
    return "\n".join([
        r"\begin{table}[h]",
        r"\centering",
        rf"\caption{{{caption}}}",
        r"\begin{tabular}{|" + "c|" * columns + "}",
        r"\hline",
        body,
        r"\end{tabular}",
        r"\end{table}",
    ])


def _expand_figure(m: re.Match) -> str:
    caption = m.group(1).strip()
    # The scanner sees escaped text; the image target must be the real URL.
    url = unescape_latex(m.group(2).strip())
    return render_figure(caption, url)


def _expand_table(m: re.Match) -> str:
    return render_table(m.group(1).strip(), parse_table_rows(m.group(2)))


def expand_rich_content(content: str) -> str:
    """
    Escape one node's author text and expand its [FIGURE:...], [TABLE:...] and
    [CITE:...] tokens into LaTeX blocks. Unrecognized brackets stay literal.

    Captions and cells come from the already escaped text and are not escaped
    again. After figures and tables are expanded, an escaped "\\$" typed by the
    author is turned back into a bare "$"; see DESIGN.md before relying on it.
    """
    processed = escape_latex(content)
    processed = _FIGURE_RE.sub(_expand_figure, processed)
    processed = _TABLE_RE.sub(_expand_table, processed)
    processed = _ESCAPED_BACKSLASH_DOLLAR_RE.sub(lambda m: "$", processed)
    processed = _CITE_RE.sub(lambda m: rf"\cite{{{m.group(1)}}}", processed)
    return processed


# ------------------------------ Audit log -------------------------------


def _format_timestamp(value: Optional[datetime]) -> str:
    if value is None:
        return "-"
    return value.strftime("%Y-%m-%d %H:%M")


def _audit_cells(entry: AuditEntry) -> List[str]:
    return [
        escape_latex(entry.tool_name),
        escape_latex(entry.usage_form),
        escape_latex(entry.affected_parts),
        escape_latex(entry.remarks),
        _format_timestamp(entry.created_at),
        _format_timestamp(entry.updated_at),
    ]


def _word_audit_table(entries: Sequence[AuditEntry]) -> List[str]:
    # pandoc's docx writer ignores widths; keep every column the same.
    lines = [
        r"\begin{longtable}{|" + "p{2.4cm}|" * len(AUDIT_COLUMNS) + "}",
        r"\hline",
        " & ".join(AUDIT_COLUMNS) + r" \\ \hline",
    ]
    lines.extend(" & ".join(_audit_cells(e)) + r" \\ \hline" for e in entries)
    lines.append(r"\end{longtable}")
    return lines


def _paginated_audit_table(entries: Sequence[AuditEntry]) -> List[str]:
    widths = ("0.14", "0.20", "0.18", "0.20", "0.11", "0.11")
    header = " & ".join(rf"\textbf{{{c}}}" for c in AUDIT_COLUMNS) + r" \\"
    lines = [
        r"\begin{longtable}{" + "".join(rf"p{{{w}\textwidth}}" for w in widths) + "}",
        r"\toprule",
        header,
        r"\midrule",
        r"\endfirsthead",
        r"\toprule",
        header,
        r"\midrule",
        r"\endhead",
    ]
    lines.extend(" & ".join(_audit_cells(e)) + r" \\" for e in entries)
    lines.append(r"\bottomrule")
    lines.append(r"\end{longtable}")
    return lines


def render_audit_log(entries: Sequence[AuditEntry], target: ExportFormat = ExportFormat.pdf) -> str:
    lines = [r"\appendix", r"\section*{Audit Log}"]
    if not entries:
        lines.append(NO_AUDIT_ENTRIES)
    elif target is ExportFormat.word:
        lines.extend(_word_audit_table(entries))
    else:
        lines.extend(_paginated_audit_table(entries))
    return "\n".join(lines)


# ------------------------------- Document --------------------------------


def heading_command(depth: int) -> str:
    return HEADING_COMMANDS[min(max(depth, 0), len(HEADING_COMMANDS) - 1)]


def _as_nodes(structure: Iterable[Union[StructureNode, Mapping]]) -> List[StructureNode]:
    return [n if isinstance(n, StructureNode) else StructureNode.model_validate(n) for n in structure]


def _as_entries(audit_log: Iterable[Union[AuditEntry, Mapping]]) -> List[AuditEntry]:
    return [e if isinstance(e, AuditEntry) else AuditEntry.model_validate(e) for e in audit_log]


def _render_tree(structure: Sequence[StructureNode], contents: Mapping[str, str]) -> List[str]:
    parts: List[str] = []
    stack = [(node, 0) for node in reversed(structure)]
    while stack:
        node, depth = stack.pop()
        parts.append(f"\\{heading_command(depth)}{{{escape_latex(node.name)}}}")
        content = contents.get(node.id)
        if content:
            parts.append(expand_rich_content(content))
            parts.append("")
        stack.extend((child, depth + 1) for child in reversed(node.nodes))
    return parts


def generate_document(
    structure: Sequence[Union[StructureNode, Mapping]],
    contents: Mapping[str, str],
    audit_log: Iterable[Union[AuditEntry, Mapping]] = (),
    target: ExportFormat = ExportFormat.pdf,
    today: Optional[date] = None,
) -> str:
    """
    Build a complete LaTeX document from the section tree.

    Top-level nodes become sections, their children subsections, and so on
    down to subparagraph, which every deeper level shares. Content is looked
    up by node id; a node without content gets an empty body and content ids
    without a node are ignored. The audit log is appended as an unnumbered
    appendix whose table layout depends on `target`.
    """
    nodes = _as_nodes(structure)
    entries = _as_entries(audit_log)
    title = nodes[0].name if nodes and nodes[0].name else "Untitled"
    stamp = (today or date.today()).strftime("%d %B %Y")

    parts: List[str] = [
        DOCUMENT_PREAMBLE.replace("<<TITLE>>", escape_latex(title)).replace("<<DATE>>", stamp),
        "",
    ]
    parts.extend(_render_tree(nodes, contents))
    parts.append(render_audit_log(entries, target))
    parts.append("")
    parts.append(DOCUMENT_CLOSING)
    return "\n".join(parts) + "\n"
