"""AI task analysis: prompt building, reply parsing and static fallback."""

import json
import logging

from anthropic import AsyncAnthropic
from pydantic import ValidationError

from studyflow.config import get_settings
from studyflow.schemas.analysis import AIAnalysis

logger = logging.getLogger(__name__)
settings = get_settings()

# Fields that must be present and non-empty for a reply to be usable
_REQUIRED_FIELDS = ("summary", "suggestedSteps", "estimatedTime", "difficulty")

FALLBACK_ANALYSIS = AIAnalysis.model_validate(
    {
        "summary": "Unable to analyze task at the moment. Please try again later.",
        "suggestedSteps": [
            "Break down the task into smaller, manageable parts",
            "Set a specific time and place to work on it",
            "Gather all necessary resources and materials",
            "Create a simple plan or checklist",
            "Start with the easiest part to build momentum",
        ],
        "estimatedTime": "Varies based on complexity",
        "difficulty": "Medium",
        "resources": [
            {
                "title": "Effective Study Strategies - Coursera",
                "url": "https://www.coursera.org/articles/study-tips",
                "type": "article",
            },
            {
                "title": "Time Management Techniques",
                "url": "https://www.khanacademy.org/college-careers-more/career-content/productivity-and-time-management",
                "type": "course",
            },
        ],
        "tips": [
            "Take regular breaks using the Pomodoro Technique (25 min work, 5 min break)",
            "Stay organized with a clear workspace and materials",
            "Set realistic goals and celebrate small wins",
            "Ask for help when you get stuck",
            "Review and reflect on your progress regularly",
        ],
        "contextualActions": [
            {
                "type": "productivity",
                "label": "Create a checklist",
                "description": "Use a task management tool to organize your work",
                "url": "https://docs.google.com/document/create",
            },
            {
                "type": "time-management",
                "label": "Set a timer",
                "description": "Use Pomodoro technique for focused work sessions",
                "url": "https://pomofocus.io",
            },
        ],
    }
)


class AnalysisParseError(ValueError):
    """Raised when a model reply cannot be turned into an AIAnalysis."""


def build_prompt(task_text: str, priority: str) -> str:
    """Build the analysis prompt for a task."""
    return f"""Analyze this study/work task and provide helpful suggestions:

Task: "{task_text}"
Priority: {priority}

IMPORTANT: Return ONLY a valid JSON object with no additional text, markdown formatting, or code blocks.

Provide a comprehensive analysis in this exact JSON format:
{{
  "summary": "Brief analysis of what this task involves",
  "suggestedSteps": ["Step 1", "Step 2", "Step 3"],
  "estimatedTime": "Realistic time estimate (e.g., '2-3 hours', '30 minutes', '1 week')",
  "difficulty": "Easy",
  "resources": [
    {{
      "title": "Resource name",
      "url": "https://example.com",
      "type": "article"
    }}
  ],
  "tips": ["Helpful tip 1", "Helpful tip 2"],
  "contextualActions": [
    {{
      "type": "productivity",
      "label": "Create template",
      "description": "Create a template for similar tasks",
      "url": "https://docs.google.com/document/create"
    }}
  ]
}}

Requirements:
- Provide 3-5 realistic and actionable steps
- Include 2-4 relevant online resources with real URLs (prefer educational sites like Khan Academy, Coursera, MDN, etc.)
- Give 3-5 practical tips for completing the task efficiently
- Set difficulty as "Easy", "Medium", or "Hard"
- Consider the priority level when suggesting approaches
- Resource types must be: "article", "video", "documentation", or "course"
- Include 1-3 contextual actions that could help with this specific task (e.g., creating templates, setting reminders, opening relevant tools)
- For contextual actions, suggest practical digital tools or services that would be helpful

Return only the JSON object, no other text."""


def strip_code_fence(text: str) -> str:
    """
    Remove a leading/trailing markdown code fence from a model reply.

    Handles both ```json and bare ``` fences. Text without a leading fence
    is only trimmed.
    """
    cleaned = text.strip()
    for opener in ("```json", "```"):
        if cleaned.startswith(opener):
            cleaned = cleaned[len(opener):].lstrip()
            if cleaned.endswith("```"):
                cleaned = cleaned[:-3].rstrip()
            break
    return cleaned.strip()


def parse_analysis(text: str) -> AIAnalysis:
    """
    Parse a model reply into an AIAnalysis.

    Raises:
        AnalysisParseError: If the reply is not JSON, is not an object,
            is missing a required field, or fails schema validation.
    """
    json_text = strip_code_fence(text)
    try:
        data = json.loads(json_text)
    except json.JSONDecodeError as e:
        raise AnalysisParseError(f"Reply is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise AnalysisParseError("Reply is not a JSON object")

    missing = [field for field in _REQUIRED_FIELDS if not data.get(field)]
    if missing:
        raise AnalysisParseError(f"Invalid response structure, missing: {', '.join(missing)}")

    try:
        return AIAnalysis.model_validate(data)
    except ValidationError as e:
        raise AnalysisParseError(f"Invalid response structure: {e}") from e


class TaskAnalyzer:
    """Asks the language model for a task breakdown."""

    def __init__(self, client: AsyncAnthropic | None = None):
        """Initialize Anthropic client."""
        self.client = client or AsyncAnthropic(api_key=settings.anthropic_api_key)

    async def analyze_task(self, task_text: str, priority: str) -> AIAnalysis:
        """
        Analyze a task with the language model.

        Makes a single request with no retry. Network errors, API errors,
        unparseable replies and invalid structures all produce a copy of
        FALLBACK_ANALYSIS; this method never raises.
        """
        try:
            message = await self.client.messages.create(
                model=settings.llm_model,
                max_tokens=settings.llm_max_tokens,
                messages=[{"role": "user", "content": build_prompt(task_text, priority)}],
            )
            text = message.content[0].text
            logger.debug("Raw AI response: %s", text)
            return parse_analysis(text)

        except AnalysisParseError as e:
            logger.error("Failed to parse AI analysis: %s", e)
        except Exception:
            logger.exception("Error analyzing task with LLM")

        return FALLBACK_ANALYSIS.model_copy(deep=True)


# Singleton instance
task_analyzer = TaskAnalyzer()
