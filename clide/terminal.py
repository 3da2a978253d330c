"""
Terminal presentation of rendered documents.
"""

from typing import List

from colorama import Fore, Style

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


RULE_WIDTH = 60
HEADING_COLORS = {1: Fore.CYAN, 2: Fore.CYAN, 3: Fore.BLUE, 4: Fore.BLUE}
ROLE_COLORS = {"user": Fore.BLUE, "assistant": Fore.MAGENTA}

# Control sequence that clears the screen and homes the cursor
CLEAR_SCREEN = "\033[2J\033[H"


def format_spans(spans: List[Span]) -> str:
    parts = []
    for span in spans:
        if isinstance(span, Bold):
            parts.append(f"{Style.BRIGHT}{span.text}{Style.NORMAL}")
        elif isinstance(span, Italic):
            # Italic support varies between terminals; dim is portable
            parts.append(f"{Style.DIM}{span.text}{Style.NORMAL}")
        elif isinstance(span, Code):
            parts.append(f"{Fore.YELLOW}{span.text}{Fore.RESET}")
        else:
            parts.append(span.text)
    return "".join(parts)


def format_node(node: BlockNode) -> List[str]:
    """
    Format one block node as terminal lines.

    Args:
        node: Block node

    Returns:
        Lines without trailing newlines
    """
    if isinstance(node, Heading):
        color = HEADING_COLORS.get(node.level, Fore.BLUE)
        weight = Style.BRIGHT if node.level <= 2 else ""
        return [f"{color}{weight}{node.text}{Style.RESET_ALL}"]
    if isinstance(node, CodeBlock):
        lines = []
        if node.language:
            lines.append(f"{Style.DIM}[{node.language}]{Style.RESET_ALL}")
        lines.extend(f"{Fore.GREEN}  {line}{Style.RESET_ALL}" for line in node.lines)
        return lines
    if isinstance(node, Checkbox):
        mark = f"{Fore.GREEN}[x]{Fore.RESET}" if node.checked else "[ ]"
        return [f"{'  ' * (node.depth + 1)}{mark} {format_spans(node.spans)}"]
    if isinstance(node, ListItem):
        marker = f"{node.number}." if node.ordered else "•"
        return [f"{'  ' * (node.depth + 1)}{marker} {format_spans(node.spans)}"]
    if isinstance(node, HRule):
        return [f"{Style.DIM}{'─' * RULE_WIDTH}{Style.RESET_ALL}"]
    if isinstance(node, Paragraph):
        return [format_spans(node.spans)]
    if isinstance(node, Blank):
        return [""]
    raise TypeError(f"Unknown block node: {type(node).__name__}")


def format_nodes(nodes: List[BlockNode]) -> List[str]:
    lines: List[str] = []
    for node in nodes:
        lines.extend(format_node(node))
    return lines


def format_collapsible(section: Collapsible, expanded: bool = False) -> List[str]:
    header = f"  ▶ {Fore.YELLOW}{section.title}{Style.RESET_ALL}"
    if section.short_id:
        header += f" {Style.DIM}#{section.short_id}{Style.RESET_ALL}"
    if section.is_error:
        header += f" {Fore.RED}ERROR{Style.RESET_ALL}"
    lines = [header]
    if expanded:
        lines.extend(f"    {line}" for line in section.body.split("\n"))
    return lines


def format_entry(entry: ComposedEntry, expanded: bool = False) -> List[str]:
    color = ROLE_COLORS.get(entry.role or "", Fore.WHITE)
    lines = [f"{color}{Style.BRIGHT}{entry.label.upper()}{Style.RESET_ALL}"]
    if entry.text:
        lines.extend(format_nodes(entry.blocks))
    for section in entry.sections:
        lines.extend(format_collapsible(section, expanded))
    if entry.metadata:
        lines.extend(format_collapsible(entry.metadata, expanded))
    lines.append(f"{Style.DIM}{'─' * RULE_WIDTH}{Style.RESET_ALL}")
    return lines


def format_document(document: LogDocument, expanded: bool = False) -> str:
    """
    Format any log or specification document for the terminal.

    Args:
        document: Output of ViewState.document() or LogViewer.document()
        expanded: Show the bodies of collapsible sections

    Returns:
        Printable text
    """
    if isinstance(document, Placeholder):
        return f"{Style.DIM}{document.message}{Style.RESET_ALL}"
    if isinstance(document, RawText):
        return document.text
    if isinstance(document, NarrativeDocument):
        return "\n".join(format_nodes(document.blocks))
    if isinstance(document, ConversationDocument):
        if document.empty:
            return f"{Style.DIM}{EMPTY_CONVERSATION_MESSAGE}{Style.RESET_ALL}"
        lines: List[str] = []
        for entry in document.entries:
            lines.extend(format_entry(entry, expanded))
        return "\n".join(lines)
    raise TypeError(f"Unknown document: {type(document).__name__}")
