"""
Prompt templates for the AI tools and normalisation of what comes back.

Gemini is asked for JSON, but the answer may still be a bare object, a
wrapped list or plain text; the extract_* helpers turn any of those into the
shape each route returns.
"""
import re
from typing import Any, List

SCRIPT_LENGTHS = {
    "short": "200-300 words",
    "medium": "500-700 words",
    "long": "1000-1500 words",
}

_HASHTAG_SPLIT_RE = re.compile(r"[\s,]+")
_LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")


def clamp_count(value: Any, default: int, maximum: int) -> int:
    """Leading integer of the requested count, clamped to [1, maximum]; unusable values give the default."""
    match = _LEADING_INT_RE.match(str(value))
    count = int(match.group(1)) if match else 0
    if not count:
        count = default
    return min(max(1, count), maximum)


def ideas_prompt(prompt: str, niche: str, count: int) -> str:
    return f"""Generate {count} creative content ideas for a {niche} niche.

User's request: {prompt}

For each idea, provide:
1. A catchy title
2. A brief description (2-3 sentences)
3. Why it would work for this niche

Format the response as a JSON array with objects containing: title, description, and reason.

Example format:
[
  {{
    "title": "Idea Title",
    "description": "Brief description of the idea",
    "reason": "Why this works for the niche"
  }}
]"""


def hooks_prompt(topic: str, count: int) -> str:
    return f"""Generate {count} attention-grabbing hooks (opening lines) for content about: {topic}

Hooks should be:
- Engaging and compelling
- Make viewers want to keep watching or reading
- Varied in style (question, statement, story, etc.)

Format as a JSON array of strings, each string being one hook."""


def script_prompt(topic: str, length: str) -> str:
    word_count = SCRIPT_LENGTHS.get(length, SCRIPT_LENGTHS["medium"])
    return f"""Generate a video/content script about: {topic}

Script length: {word_count}

The script should:
- Have a clear structure (hook, introduction, main content, conclusion)
- Be engaging and conversational
- Include natural transitions
- Be suitable for video or written content

Format the response as a JSON object with:
{{
  "title": "Script title",
  "hook": "Opening hook",
  "introduction": "Introduction paragraph",
  "mainContent": "Main content (can be multiple paragraphs)",
  "conclusion": "Conclusion paragraph",
  "callToAction": "Call to action"
}}"""


def captions_prompt(topic: str, tone: str, count: int) -> str:
    return f"""Generate {count} social media captions about: {topic}

Tone: {tone}

Each caption should:
- Be engaging and appropriate for social media
- Include emojis where natural
- Be between 100-300 characters
- Match the specified tone

Format as a JSON array of strings."""


def hashtags_prompt(niche: str, count: int) -> str:
    return f"""Generate {count} relevant and trending hashtags for the {niche} niche.

Hashtags should:
- Be relevant to the niche
- Include a mix of popular and niche-specific tags
- Be suitable for Instagram, TikTok, Twitter, etc.
- Not include the # symbol (just the text)

Format as a JSON array of strings."""


def improve_prompt(script: str) -> str:
    return f"""Improve the following script. Make it more engaging, clear, and effective while keeping the original message and style.

Original script:
{script}

Provide the improved version with:
1. Enhanced hook (if applicable)
2. Better flow and transitions
3. More engaging language
4. Clearer structure
5. Stronger conclusion/call to action

Format as a JSON object with:
{{
  "improvedScript": "The improved script text",
  "changes": ["List of key improvements made"],
  "suggestions": ["Additional suggestions for the script"]
}}"""


def _unwrap_list(data: Any, key: str):
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get(key), list):
        return data[key]
    return None


def _fallback_text(data: Any) -> str:
    if isinstance(data, dict) and isinstance(data.get("text"), str):
        return data["text"].strip()
    return ""


def extract_ideas(data: Any, count: int) -> List[Any]:
    ideas = _unwrap_list(data, "ideas")
    if ideas is None:
        text = _fallback_text(data)
        ideas = [{"title": "Generated Idea", "description": text}] if text else []
    return ideas[:count]


def extract_strings(data: Any, key: str, count: int) -> List[Any]:
    """Hooks and captions: a list of strings, or the raw text as a single item."""
    items = _unwrap_list(data, key)
    if items is None:
        text = _fallback_text(data)
        items = [text] if text else []
    return items[:count]


def extract_hashtags(data: Any, count: int) -> List[str]:
    tags = _unwrap_list(data, "hashtags")
    if tags is None:
        tags = _HASHTAG_SPLIT_RE.split(_fallback_text(data))
    cleaned = [str(tag).strip().lstrip("#") for tag in tags]
    return [tag for tag in cleaned if tag][:count]


def improved_length(data: Any) -> int:
    if isinstance(data, dict) and isinstance(data.get("improvedScript"), str):
        return len(data["improvedScript"])
    return 0

