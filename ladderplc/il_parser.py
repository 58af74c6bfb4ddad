"""
IL Line Parser

Parses IEC 61131-3 Instruction List text into Instruction objects and formats
instructions back into text.
"""

import re
import logging
from typing import List

from .errors import ParseError
from .models import Instruction

logger = logging.getLogger(__name__)

# OPERATOR(modifier); the modifier may be empty
_OPERATOR_WITH_MODIFIER = re.compile(r'(\w+)\((\w*)\)')
_COMMENT_PREFIX = ';'


def parse_instruction(line: str) -> Instruction:
    """
    Parse a single IL line such as ``LD X1`` or ``ADD(N) COUNT``.

    Args:
        line: The instruction text

    Returns:
        The parsed Instruction

    Raises:
        ParseError: If the line is empty or the operator token is malformed
        ValidationError: If the operator is not a known IL operator
    """
    tokens = line.strip().split()
    if not tokens:
        raise ParseError("empty instruction line")

    op_token, rest = tokens[0], tokens[1:]
    modifier = None
    if '(' in op_token or ')' in op_token:
        match = _OPERATOR_WITH_MODIFIER.fullmatch(op_token)
        if not match:
            raise ParseError(f"malformed operator token '{op_token}'")
        op_token = match.group(1)
        modifier = match.group(2) or None

    operand = ' '.join(rest) if rest else None
    return Instruction(operator=op_token, operand=operand, modifier=modifier)


def parse_program(text: str) -> List[Instruction]:
    """
    Parse an IL program, skipping blank lines and ``;`` comment lines.

    ParseError messages carry the 1-based line number of the offending line.
    """
    instructions = []
    for line_number, line in enumerate(text.splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith(_COMMENT_PREFIX):
            continue
        try:
            instructions.append(parse_instruction(stripped))
        except ParseError as e:
            raise ParseError(str(e), line_number=line_number) from e
    logger.debug(f"Parsed {len(instructions)} IL instructions")
    return instructions


def format_instruction(instruction: Instruction) -> str:
    """Format an instruction as ``OP(mod) operand``."""
    return str(instruction)


def format_program(instructions: List[Instruction]) -> str:
    return '\n'.join(format_instruction(instruction) for instruction in instructions)
