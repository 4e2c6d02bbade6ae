"""
Prompt Builder - Jinja2 templates for every LLM call

Templates live in prompts/templates and take a `language` variable
("en" or "ar") where an Arabic variant exists.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from smartdocs.core.plans import CONTEXT_CONFIG

SAUDI_ARABIA = "saudi-arabia"

ARABIC_MONTHS = [
    "يناير", "فبراير", "مارس", "أبريل", "مايو", "يونيو",
    "يوليو", "أغسطس", "سبتمبر", "أكتوبر", "نوفمبر", "ديسمبر",
]

ANALYSIS_SYSTEM_PROMPTS = {
    "en": (
        "You are an expert project analyst. Your task is to analyze project ideas and determine "
        "if there's sufficient information to create comprehensive documentation."
    ),
    "ar": (
        "أنت محلل مشاريع خبير. مهمتك تحليل أفكار المشاريع وتحديد ما إذا كانت المعلومات كافية "
        "لإنشاء وثائق شاملة."
    ),
}


def format_transcript(messages: Iterable[Any], assistant_label: str = "Assistant") -> str:
    """Render messages as "User: ..." / "<assistant_label>: ..." lines"""
    lines = []
    for message in messages:
        role = message.get("role") if isinstance(message, dict) else message.role
        content = message.get("content") if isinstance(message, dict) else message.content
        speaker = "User" if role == "user" else assistant_label
        lines.append(f"{speaker}: {content}")
    return "\n".join(lines)


def format_long_date(value: datetime, language: str = "en") -> str:
    if language == "ar":
        return f"{value.day} {ARABIC_MONTHS[value.month - 1]} {value.year}"
    return f"{value.strftime('%B')} {value.day}, {value.year}"


def country_context(country: Optional[str], language: str = "en", short: bool = False) -> str:
    """
    Market description injected into advanced planning prompts

    short=True gives the compact form used for document suites.
    """
    if country == SAUDI_ARABIA:
        if short:
            return "السعودية" if language == "ar" else "Saudi Arabia"
        return "السوق السعودي والبيئة التنظيمية" if language == "ar" else "Saudi Arabian market and regulatory environment"
    if short:
        return "السوق العالمي" if language == "ar" else "Global Market"
    return "السوق العالمي" if language == "ar" else "global market context"


class PromptBuilder:
    """Builds prompts from Jinja2 templates"""

    def __init__(self):
        templates_dir = Path(__file__).parent / "templates"
        self.env = Environment(
            loader=FileSystemLoader(templates_dir),
            autoescape=select_autoescape(['html', 'xml']),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render(self, template_name: str, **context) -> str:
        return self.env.get_template(template_name).render(**context).strip()

    def conversation_prompt(self, history: List[Any], user_message: str, language: str) -> str:
        return self.render(
            "conversation.jinja2",
            language=language,
            conversation_context=format_transcript(history),
            user_message=user_message,
        )

    def advanced_conversation_prompt(
        self,
        history: List[Any],
        user_message: str,
        language: str,
        country: Optional[str],
        planning_step: str,
    ) -> str:
        return self.render(
            "advanced_conversation.jinja2",
            language=language,
            country_context=country_context(country, language),
            conversation_context=format_transcript(history),
            user_message=user_message,
            planning_step=planning_step,
        )

    def brd_system_prompt(self, language: str, now: Optional[datetime] = None) -> str:
        return self.render(
            "brd_from_conversation.jinja2",
            language=language,
            current_date=format_long_date(now or datetime.now(), language),
        )

    def suite_document_prompt(self, document_title: str, business_description: str, country: Optional[str], language: str) -> str:
        return self.render(
            "suite_document.jinja2",
            language=language,
            document_title=document_title,
            business_description=business_description,
            country_context=country_context(country, language, short=True),
        )

    def analysis_prompt(self, project_idea: str, uploaded_files: List[str], language: str) -> str:
        return self.render(
            "project_analysis.jinja2",
            language=language,
            project_idea=project_idea,
            uploaded_files=uploaded_files,
        )

    def analysis_system_prompt(self, language: str) -> str:
        return ANALYSIS_SYSTEM_PROMPTS.get(language, ANALYSIS_SYSTEM_PROMPTS["en"])

    def project_document_system_prompt(self, document_title: str, language: str) -> str:
        return self.render("project_document_system.jinja2", language=language, document_title=document_title)

    def project_document_prompt(
        self,
        project_idea: str,
        uploaded_files: List[str],
        additional_info: Dict[str, Any],
        language: str,
    ) -> str:
        return self.render(
            "project_document.jinja2",
            language=language,
            project_idea=project_idea,
            uploaded_files=uploaded_files,
            additional_info=additional_info,
        )

    def summary_prompt(self, messages: List[Any], project: Optional[Any] = None) -> str:
        return self.render(
            "conversation_summary.jinja2",
            target_tokens=CONTEXT_CONFIG["SUMMARY_TARGET_TOKENS"],
            transcript=format_transcript(messages, assistant_label="AI"),
            project=project,
        )
