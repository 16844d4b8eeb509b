"""系统提示词构造工具。

按科目生成与 Provider 无关的 system instruction：所有科目共用一段
基础指令，数理化额外要求 LaTeX 公式格式（块级与行内定界符不同），
编程科目要求给出带注释的代码。
"""

from tutor_core.domain.models import Subject


BLOCK_MATH_DELIMITER = "$$"
INLINE_MATH_DELIMITER = "$"

QUANTITATIVE_SUBJECTS = frozenset({Subject.MATH, Subject.PHYSICS, Subject.CHEMISTRY})

TABLE_DIRECTIVE = (
    "If the user asks for a comparison or list, ALWAYS format the output as a Markdown Table."
)

MATH_DIRECTIVE = f"""
- CRITICAL: You MUST use LaTeX formatting for all mathematical equations, formulas, and symbols.
- Wrap block equations in double dollar signs: {BLOCK_MATH_DELIMITER} ... {BLOCK_MATH_DELIMITER}
- Wrap inline equations in single dollar signs: {INLINE_MATH_DELIMITER} ... {INLINE_MATH_DELIMITER}
- Explain concepts step-by-step.
- If the user makes a mistake, gently correct them."""

CODING_DIRECTIVE = "Provide clean, well-commented code snippets. Explain the logic behind the code."

GENERAL_DIRECTIVE = "Be concise and clear."


def build_system_instruction(subject: Subject) -> str:
    """根据科目构造 system instruction，纯函数，不会失败。"""

    subject = Subject(subject)
    base = f"You are a helpful, expert tutor specializing in {subject.value}. {TABLE_DIRECTIVE}"
    if subject in QUANTITATIVE_SUBJECTS:
        return base + MATH_DIRECTIVE
    if subject is Subject.CODING:
        return f"{base} {CODING_DIRECTIVE}"
    return f"{base} {GENERAL_DIRECTIVE}"
