"""
HTML presentation of rendered documents for the dashboard page.

All text is escaped with MarkupSafe; markup only ever comes from the node
and span types themselves.
"""

from typing import List

from markupsafe import Markup, escape

from clide.composer import Collapsible, ComposedEntry, ConversationDocument, EMPTY_CONVERSATION_MESSAGE
from clide.markdown import (
    Blank,
    Bold,
    BlockNode,
    Checkbox,
    Code,
    CodeBlock,
    HRule,
    Heading,
    Italic,
    ListItem,
    Paragraph,
    Span,
)
from clide.view import LogDocument, NarrativeDocument, Placeholder, RawText


ROLE_CLASSES = {
    "user": "role-user",
    "assistant": "role-assistant",
}


def render_spans(spans: List[Span]) -> Markup:
    parts = []
    for span in spans:
        if isinstance(span, Bold):
            parts.append(Markup("<strong>{}</strong>").format(span.text))
        elif isinstance(span, Italic):
            parts.append(Markup("<em>{}</em>").format(span.text))
        elif isinstance(span, Code):
            parts.append(Markup('<code class="inline-code">{}</code>').format(span.text))
        else:
            parts.append(escape(span.text))
    return Markup("").join(parts)


def render_node(node: BlockNode) -> Markup:
    """
    Render one block node.

    Args:
        node: Block node

    Returns:
        HTML fragment
    """
    if isinstance(node, Heading):
        return Markup("<h{0}>{1}</h{0}>").format(node.level, node.text)
    if isinstance(node, CodeBlock):
        label = Markup("")
        if node.language:
            label = Markup('<div class="code-lang">{}</div>').format(node.language)
        return Markup('<div class="code-block">{}<pre><code>{}</code></pre></div>').format(
            label, "\n".join(node.lines)
        )
    if isinstance(node, Checkbox):
        checked = Markup(" checked") if node.checked else Markup("")
        return Markup(
            '<div class="checkbox depth-{}"><input type="checkbox" disabled{}> <span>{}</span></div>'
        ).format(node.depth, checked, render_spans(node.spans))
    if isinstance(node, ListItem):
        style = "list-decimal" if node.ordered else "list-disc"
        value = Markup(' value="{}"').format(node.number) if node.ordered else Markup("")
        return Markup('<li class="{} depth-{}"{}>{}</li>').format(
            style, node.depth, value, render_spans(node.spans)
        )
    if isinstance(node, HRule):
        return Markup("<hr>")
    if isinstance(node, Paragraph):
        return Markup("<p>{}</p>").format(render_spans(node.spans))
    if isinstance(node, Blank):
        return Markup('<div class="spacer"></div>')
    raise TypeError(f"Unknown block node: {type(node).__name__}")


def render_nodes(nodes: List[BlockNode]) -> Markup:
    return Markup('<div class="prose">{}</div>').format(
        Markup("\n").join(render_node(node) for node in nodes)
    )


def render_collapsible(section: Collapsible) -> Markup:
    ident = Markup("")
    if section.short_id:
        ident = Markup('<span class="short-id">#{}</span>').format(section.short_id)
    error = Markup('<span class="error-flag">ERROR</span>') if section.is_error else Markup("")
    return Markup(
        '<details class="collapsible {kind}"><summary>'
        '<span class="title">{title}</span>{ident}{error}</summary>'
        '<pre>{body}</pre></details>'
    ).format(kind=section.kind, title=section.title, ident=ident, error=error, body=section.body)


def render_entry(entry: ComposedEntry) -> Markup:
    role_class = ROLE_CLASSES.get(entry.role or "", "role-other")
    text = render_nodes(entry.blocks) if entry.text else Markup("")
    sections = Markup("").join(render_collapsible(section) for section in entry.sections)
    metadata = render_collapsible(entry.metadata) if entry.metadata else Markup("")
    return Markup(
        '<div class="entry"><span class="role-badge {}">{}</span>'
        '<div class="entry-text">{}</div>{}{}</div>'
    ).format(role_class, entry.label, text, sections, metadata)


def render_conversation(document: ConversationDocument) -> Markup:
    if document.empty:
        return Markup('<div class="empty-state">{}</div>').format(EMPTY_CONVERSATION_MESSAGE)
    return Markup("\n").join(render_entry(entry) for entry in document.entries)


def render_document(document: LogDocument) -> Markup:
    """
    Render any log or specification document to HTML.

    Args:
        document: Output of ViewState.document() or LogViewer.document()

    Returns:
        HTML fragment
    """
    if isinstance(document, Placeholder):
        css = "loading-state" if document.loading else "empty-state"
        return Markup('<div class="{}">{}</div>').format(css, document.message)
    if isinstance(document, RawText):
        return Markup('<pre class="raw-log">{}</pre>').format(document.text)
    if isinstance(document, NarrativeDocument):
        return render_nodes(document.blocks)
    if isinstance(document, ConversationDocument):
        return render_conversation(document)
    raise TypeError(f"Unknown document: {type(document).__name__}")
