"""Prompt service - enhancement, scoring, breakdown and suggestions.

Hides the AI-vs-rule-based decision from callers. With credentials for the
supported provider the AI path is tried first and any failure of that call
falls back to deterministic keyword heuristics. Credentials naming any other
provider are rejected outright.
"""

import asyncio
import json
import logging
import math
import re
import uuid
from dataclasses import dataclass
from typing import Optional, List, Dict, Any

from assetstudio.errors import AIProviderError, CorruptDataError, UnsupportedProviderError
from assetstudio.models.domain import (
    AICredentials,
    AssetType,
    ComponentType,
    EnhancementType,
    Project,
    PromptBreakdown,
    PromptComponent,
    PromptHistory,
    PromptScore,
    PromptSuggestion,
    PromptTemplate,
    StyleOverride,
    SuggestionType,
)
from assetstudio.repositories.prompt_repository import PromptRepository
from assetstudio.services.ai.google_ai_service import GoogleAIService

logger = logging.getLogger(__name__)

# Scoring vocabulary
QUALITY_TERMS = ["4k", "8k", "high resolution", "detailed", "sharp", "crisp"]
STYLE_TERMS = ["photorealistic", "artistic", "painting", "sketch", "cartoon", "anime"]
LIGHTING_TERMS = ["lighting", "light", "shadow", "golden hour", "dramatic"]

# Breakdown vocabulary: (component type, label, weight, keywords)
BREAKDOWN_RULES = [
    (ComponentType.STYLE, "Art Style", 7,
     ["photorealistic", "cartoon", "anime", "oil painting", "watercolor", "sketch"]),
    (ComponentType.LIGHTING, "Lighting", 6,
     ["golden hour", "dramatic lighting", "soft light", "harsh shadows"]),
    (ComponentType.QUALITY, "Quality", 5,
     ["4k", "8k", "high resolution", "detailed", "sharp"]),
]

SHORT_PROMPT = 10
LONG_PROMPT = 500


@dataclass
class EnhancedPrompt:
    """Result of enhance, with provenance for the audit trail."""
    text: str
    style_merged: str
    used_ai: bool
    provider: Optional[str] = None
    model: Optional[str] = None

    @property
    def enhancement_type(self) -> EnhancementType:
        return EnhancementType.AI if self.used_ai else EnhancementType.MANUAL


def merge_style(
    base_prompt: str,
    project: Optional[Project],
    style_override: Optional[StyleOverride] = None,
) -> str:
    """Append the project's (or the override's) style description and keywords."""
    description = _style_description(project, style_override)
    keywords = _style_keywords(project, style_override)

    enhanced = base_prompt
    if description:
        enhanced += f" Style: {description}"
    if keywords:
        enhanced += f" Keywords: {', '.join(keywords)}"
    return enhanced


def _style_description(project: Optional[Project], style_override: Optional[StyleOverride]) -> str:
    if style_override and style_override.description:
        return style_override.description
    return project.art_style.description if project else ""


def _style_keywords(project: Optional[Project], style_override: Optional[StyleOverride]) -> List[str]:
    if style_override and style_override.keywords is not None:
        return list(style_override.keywords)
    return list(project.art_style.style_keywords) if project else []


class PromptService:
    """
    Facade over prompt enhancement and the prompt audit trail.

    Responsibilities:
    - Style-merge and (optionally) AI-enhance prompts
    - Score, break down and suggest edits to prompts
    - Record prompt history, templates and breakdowns

    Does NOT:
    - Touch projects, assets or jobs (callers pass what they loaded)
    """

    def __init__(
        self,
        prompt_repo: PromptRepository,
        ai_service: Optional[GoogleAIService] = None,
        supported_provider: str = "google",
    ):
        self.prompt_repo = prompt_repo
        self.ai_service = ai_service or GoogleAIService()
        self.supported_provider = supported_provider

    def validate_credentials(self, credentials: Optional[AICredentials]):
        """Raise UnsupportedProviderError unless credentials are absent or supported."""
        if credentials is not None and credentials.provider != self.supported_provider:
            raise UnsupportedProviderError(credentials.provider, self.supported_provider)

    # ------------------------------------------------------------------
    # Enhancement
    # ------------------------------------------------------------------

    async def enhance(
        self,
        base_prompt: str,
        project: Optional[Project],
        style_override: Optional[StyleOverride] = None,
        credentials: Optional[AICredentials] = None,
        asset_type: Optional[AssetType] = None,
    ) -> str:
        """Enhanced prompt text. Never fails because of the AI call."""
        result = await self.enhance_detailed(
            base_prompt, project, style_override, credentials, asset_type
        )
        return result.text

    async def enhance_detailed(
        self,
        base_prompt: str,
        project: Optional[Project],
        style_override: Optional[StyleOverride] = None,
        credentials: Optional[AICredentials] = None,
        asset_type: Optional[AssetType] = None,
    ) -> EnhancedPrompt:
        self.validate_credentials(credentials)
        style_merged = merge_style(base_prompt, project, style_override)

        if credentials is None:
            return EnhancedPrompt(text=style_merged, style_merged=style_merged, used_ai=False)

        try:
            response = await self.ai_service.enhance_prompt(
                style_merged,
                credentials,
                asset_type=asset_type.value if asset_type else None,
                art_style=_style_description(project, style_override) or None,
                style_keywords=_style_keywords(project, style_override) or None,
            )
        except Exception as e:
            logger.warning("AI enhancement failed, using style-merged prompt: %s", e)
            return EnhancedPrompt(text=style_merged, style_merged=style_merged, used_ai=False)

        return EnhancedPrompt(
            text=response.text,
            style_merged=style_merged,
            used_ai=True,
            provider=credentials.provider,
            model=credentials.model,
        )

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    async def score(
        self,
        prompt: str,
        project: Optional[Project] = None,
        asset_type: Optional[AssetType] = None,
        credentials: Optional[AICredentials] = None,
    ) -> PromptScore:
        """Score a prompt 0-100 with feedback and suggestions."""
        self.validate_credentials(credentials)

        if credentials is not None:
            request = build_scoring_request(prompt, asset_type, project)
            try:
                response = await self.ai_service.generate_text(
                    request, credentials, temperature=0.3, max_output_tokens=800
                )
                parsed = parse_score_response(response.text)
                if parsed is not None:
                    return parsed
                logger.warning("Unparsable AI scoring response, using rule-based scoring")
            except AIProviderError as e:
                logger.warning("AI scoring failed, using rule-based scoring: %s", e)

        return score_rule_based(prompt)

    # ------------------------------------------------------------------
    # Breakdown
    # ------------------------------------------------------------------

    async def breakdown(
        self,
        prompt: str,
        project_id: Optional[str] = None,
        asset_type: Optional[AssetType] = None,
        credentials: Optional[AICredentials] = None,
    ) -> PromptBreakdown:
        """Decompose a prompt into typed, weighted components and persist it."""
        self.validate_credentials(credentials)

        components: List[PromptComponent] = []
        if credentials is not None:
            request = build_analysis_request(prompt, asset_type)
            try:
                response = await self.ai_service.generate_text(
                    request, credentials, temperature=0.3, max_output_tokens=1000
                )
                components = parse_components(response.text)
            except AIProviderError as e:
                logger.warning("AI breakdown failed, using rule-based extraction: %s", e)

        if not components:
            components = extract_components_rule_based(prompt)

        breakdown = PromptBreakdown(
            id=str(uuid.uuid4()),
            original_prompt=prompt,
            components=components,
            reconstructed_prompt=reconstruct_prompt(components),
            created_at=self.prompt_repo.store.get_current_timestamp(),
            project_id=project_id,
            asset_type=asset_type,
        )

        try:
            await asyncio.to_thread(self.prompt_repo.save_breakdown, breakdown)
        except (OSError, CorruptDataError) as e:
            logger.error("Failed to save prompt breakdown: %s", e)

        return breakdown

    # ------------------------------------------------------------------
    # Suggestions
    # ------------------------------------------------------------------

    async def suggest(
        self,
        prompt: str,
        project: Optional[Project] = None,
        asset_type: Optional[AssetType] = None,
        credentials: Optional[AICredentials] = None,
        count: int = 3,
    ) -> List[PromptSuggestion]:
        """Suggest improvements to a prompt."""
        self.validate_credentials(credentials)

        if credentials is not None:
            request = build_suggestion_request(prompt, asset_type, project, count)
            try:
                response = await self.ai_service.generate_text(
                    request, credentials, temperature=0.7, max_output_tokens=1200
                )
                suggestions = parse_suggestions(response.text)
                if suggestions:
                    return suggestions[:count]
                logger.warning("Unparsable AI suggestions, using rule-based suggestions")
            except AIProviderError as e:
                logger.warning("AI suggestions failed, using rule-based suggestions: %s", e)

        return suggest_rule_based(prompt)[:count]

    # ------------------------------------------------------------------
    # History and templates
    # ------------------------------------------------------------------

    def save_history(
        self,
        project_id: str,
        original_prompt: str,
        enhanced_prompt: Optional[str] = None,
        asset_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        parent_id: Optional[str] = None,
    ) -> PromptHistory:
        return self.prompt_repo.create({
            "project_id": project_id,
            "asset_id": asset_id,
            "original_prompt": original_prompt,
            "enhanced_prompt": enhanced_prompt,
            "metadata": metadata or {},
            "parent_id": parent_id,
        })

    def tag_history(self, history_id: str, metadata: Dict[str, Any]) -> Optional[PromptHistory]:
        """Merge metadata (e.g. feedback) into an existing history record."""
        return self.prompt_repo.update(history_id, {"metadata": metadata})

    def get_history(self, project_id: str, asset_id: Optional[str] = None) -> List[PromptHistory]:
        return self.prompt_repo.list_history(project_id, asset_id)

    def get_templates(
        self,
        asset_type: Optional[AssetType] = None,
        category: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> List[PromptTemplate]:
        return self.prompt_repo.list_templates(asset_type, category, tags)

    def create_template(self, data: Dict[str, Any]) -> PromptTemplate:
        return self.prompt_repo.create_template(data)


# ----------------------------------------------------------------------
# Rule-based fallbacks
# ----------------------------------------------------------------------

def score_rule_based(prompt: str) -> PromptScore:
    score = 50
    feedback: List[str] = []
    suggestions: List[str] = []
    lowered = prompt.lower()

    if len(prompt) < SHORT_PROMPT:
        score -= 20
        feedback.append("Prompt is too short")
        suggestions.append("Add more descriptive details")
    elif len(prompt) > LONG_PROMPT:
        score -= 10
        feedback.append("Prompt might be too long")
        suggestions.append("Consider condensing to key elements")
    else:
        score += 10
        feedback.append("Good prompt length")

    if any(term in lowered for term in QUALITY_TERMS):
        score += 15
        feedback.append("Includes quality descriptors")
    else:
        suggestions.append('Add quality descriptors like "4k, detailed"')

    if any(term in lowered for term in STYLE_TERMS):
        score += 15
        feedback.append("Includes style information")
    else:
        suggestions.append("Specify artistic style or rendering approach")

    if any(term in lowered for term in LIGHTING_TERMS):
        score += 10
        feedback.append("Includes lighting details")
    else:
        suggestions.append("Add lighting description for better visual appeal")

    return PromptScore(
        score=_clamp(score, 0, 100),
        feedback=". ".join(feedback) or "Basic prompt structure detected",
        suggestions=suggestions,
    )


def extract_components_rule_based(prompt: str) -> List[PromptComponent]:
    lowered = prompt.lower()
    components = [
        PromptComponent(
            id=str(uuid.uuid4()),
            type=ComponentType.SUBJECT,
            label="Main Subject",
            value=prompt.split(",")[0].strip(),
            weight=10,
        )
    ]

    for component_type, label, weight, keywords in BREAKDOWN_RULES:
        for keyword in keywords:
            if keyword in lowered:
                components.append(PromptComponent(
                    id=str(uuid.uuid4()),
                    type=component_type,
                    label=label,
                    value=keyword,
                    weight=weight,
                ))

    return components


def suggest_rule_based(prompt: str) -> List[PromptSuggestion]:
    lowered = prompt.lower()
    suggestions = []

    if "4k" not in lowered and "high resolution" not in lowered:
        suggestions.append(PromptSuggestion(
            id=str(uuid.uuid4()),
            type=SuggestionType.IMPROVEMENT,
            title="Add Quality Descriptors",
            description="Adding quality descriptors can improve the detail and resolution of generated images",
            suggested_change='Add "4k, high resolution, detailed" to the end',
            confidence=0.8,
            category="quality",
        ))

    if "light" not in lowered:
        suggestions.append(PromptSuggestion(
            id=str(uuid.uuid4()),
            type=SuggestionType.IMPROVEMENT,
            title="Specify Lighting",
            description="Lighting specifications help create more visually appealing results",
            suggested_change='Add lighting description like "golden hour lighting" or "dramatic shadows"',
            confidence=0.7,
            category="lighting",
        ))

    return suggestions


def reconstruct_prompt(components: List[PromptComponent]) -> str:
    """Join component values by descending weight."""
    ordered = sorted(components, key=lambda c: c.weight, reverse=True)
    return ", ".join(c.value for c in ordered)


# ----------------------------------------------------------------------
# AI request builders
# ----------------------------------------------------------------------

def _style_context(project: Optional[Project]) -> str:
    if not project:
        return ""
    keywords = ", ".join(project.art_style.style_keywords) or "none"
    return (
        f"\nProject art style: {project.art_style.description}"
        f"\nStyle keywords: {keywords}"
    )


def build_analysis_request(prompt: str, asset_type: Optional[AssetType]) -> str:
    types = "|".join(t.value for t in ComponentType)
    return f"""Analyze the following prompt and break it down into specific components. Identify the subject, style, composition, lighting, camera settings, mood, quality descriptors, and technical aspects.

Prompt to analyze: "{prompt}"
Asset type: {asset_type.value if asset_type else 'unknown'}

Please provide the analysis in this JSON format:
{{
  "components": [
    {{
      "type": "{types}",
      "label": "Brief label",
      "value": "Extracted text",
      "description": "What this component contributes",
      "weight": 1-10
    }}
  ]
}}

Return only the JSON, no additional text."""


def build_suggestion_request(
    prompt: str,
    asset_type: Optional[AssetType],
    project: Optional[Project],
    count: int,
) -> str:
    return f"""Analyze this prompt and provide {count} specific suggestions for improvement:

Prompt: "{prompt}"
Asset type: {asset_type.value if asset_type else 'unknown'}{_style_context(project)}

Provide suggestions in this JSON format:
{{
  "suggestions": [
    {{
      "type": "improvement|alternative|component|style",
      "title": "Brief title",
      "description": "Detailed description",
      "suggestedChange": "Specific text to add/change",
      "confidence": 0.0-1.0,
      "category": "subject|style|composition|lighting|technical|quality",
      "reasoning": "Why this suggestion helps"
    }}
  ]
}}

Focus on:
- Missing important details that would improve generation quality
- Style consistency with project requirements
- Clarity and specificity improvements

Return only the JSON, no additional text."""


def build_scoring_request(
    prompt: str,
    asset_type: Optional[AssetType],
    project: Optional[Project],
) -> str:
    return f"""Score this prompt for AI generation quality on a scale of 0-100 and provide specific feedback:

Prompt: "{prompt}"
Asset type: {asset_type.value if asset_type else 'unknown'}{_style_context(project)}

Evaluate based on:
- Clarity and specificity
- Technical detail appropriateness
- Style consistency
- Completeness of description
- AI generation effectiveness

Provide response in this JSON format:
{{
  "score": 0-100,
  "feedback": "Detailed explanation of the score",
  "suggestions": ["specific improvement 1", "specific improvement 2", "specific improvement 3"]
}}

Return only the JSON, no additional text."""


# ----------------------------------------------------------------------
# AI response parsers
# ----------------------------------------------------------------------

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def _load_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Parse a JSON object, tolerating markdown fences and surrounding prose."""
    cleaned = _FENCE.sub("", text.strip())
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start == -1 or end <= start:
        return None
    try:
        parsed = json.loads(cleaned[start:end + 1])
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def parse_score_response(text: str) -> Optional[PromptScore]:
    """JSON {score, feedback, suggestions}, or SCORE:/FEEDBACK:/SUGGESTIONS: text."""
    parsed = _load_json_object(text)
    if parsed is not None and "score" in parsed:
        score = _bounded_int(parsed.get("score") or 0, 0, 100, default=0)
        suggestions = parsed.get("suggestions")
        return PromptScore(
            score=score,
            feedback=str(parsed.get("feedback") or "No feedback available"),
            suggestions=[str(s) for s in suggestions] if isinstance(suggestions, list) else [],
        )

    score_match = re.search(r"SCORE:\s*(\d+)", text, re.IGNORECASE)
    if not score_match:
        return None

    feedback_match = re.search(r"FEEDBACK:\s*(.+?)(?=SUGGESTIONS:|$)", text, re.IGNORECASE | re.DOTALL)
    suggestions_match = re.search(r"SUGGESTIONS:\s*((?:-.+\n?)+)", text, re.IGNORECASE)
    suggestions = []
    if suggestions_match:
        suggestions = [
            line.lstrip("-").strip()
            for line in suggestions_match.group(1).splitlines()
            if line.strip()
        ]

    return PromptScore(
        score=_bounded_int(score_match.group(1), 0, 100, default=0),
        feedback=feedback_match.group(1).strip() if feedback_match else "No feedback available",
        suggestions=suggestions,
    )


def parse_components(text: str) -> List[PromptComponent]:
    parsed = _load_json_object(text)
    if parsed is None or not isinstance(parsed.get("components"), list):
        logger.warning("Failed to parse AI component response")
        return []

    components = []
    for raw in parsed["components"]:
        if not isinstance(raw, dict):
            continue
        try:
            component_type = ComponentType(raw.get("type"))
        except ValueError:
            continue
        components.append(PromptComponent(
            id=str(uuid.uuid4()),
            type=component_type,
            label=str(raw.get("label") or component_type.value.title()),
            value=str(raw.get("value") or ""),
            description=raw.get("description"),
            weight=_bounded_int(raw.get("weight") or 5, 1, 10, default=5),
        ))
    return [c for c in components if c.value]


def parse_suggestions(text: str) -> List[PromptSuggestion]:
    """JSON suggestions, or a numbered list of alternative prompts."""
    parsed = _load_json_object(text)
    if parsed is not None and isinstance(parsed.get("suggestions"), list):
        suggestions = []
        for raw in parsed["suggestions"]:
            if not isinstance(raw, dict):
                continue
            try:
                suggestion_type = SuggestionType(raw.get("type"))
            except ValueError:
                suggestion_type = SuggestionType.IMPROVEMENT
            try:
                confidence = float(raw.get("confidence", 0.5))
            except (TypeError, ValueError):
                confidence = 0.5
            suggestions.append(PromptSuggestion(
                id=str(uuid.uuid4()),
                type=suggestion_type,
                title=str(raw.get("title", "")),
                description=str(raw.get("description", "")),
                suggested_change=str(raw.get("suggestedChange") or raw.get("suggested_change") or ""),
                confidence=min(max(confidence, 0.0), 1.0),
                category=str(raw.get("category", "")),
                reasoning=raw.get("reasoning"),
            ))
        return suggestions

    alternatives = []
    for line in text.splitlines():
        match = re.match(r"^\s*\d+\.\s*(.+)$", line)
        if match:
            alternatives.append(match.group(1).strip())

    return [
        PromptSuggestion(
            id=str(uuid.uuid4()),
            type=SuggestionType.ALTERNATIVE,
            title=f"Alternative {i}",
            description="AI-generated variation of the prompt",
            suggested_change=alternative,
            confidence=0.5,
            category="alternative",
        )
        for i, alternative in enumerate(alternatives, start=1)
    ]


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def _bounded_int(value: Any, low: int, high: int, default: int) -> int:
    """Coerce a model-supplied number into [low, high]; NaN and non-numbers give default."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number):
        return default
    return int(round(max(low, min(high, number))))
