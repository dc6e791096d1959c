from __future__ import annotations

from dataclasses import dataclass

from ads_ai.models import CreativePromptContext, normalize_language
from ads_ai.sizes import resolve_aspect_ratio, size_dimensions


@dataclass(frozen=True)
class CreativeFormat:
    id: str
    name: str
    description: str
    instructions: str


CREATIVE_FORMATS: tuple[CreativeFormat, ...] = (
    CreativeFormat(
        "before-after",
        "До/Після",
        "Демонстрація трансформації",
        'Split-screen design showing "before" and "after" transformation. Clear visual contrast between the two states.',
    ),
    CreativeFormat(
        "testimonial",
        "Відгук",
        "Відгук клієнта",
        "Customer testimonial format with a photo/avatar, quote, and name. Professional and trustworthy design.",
    ),
    CreativeFormat(
        "ugc",
        "UGC",
        "User-generated content",
        "User-generated content style - authentic, relatable, and natural-looking. Should feel like real user content.",
    ),
    CreativeFormat(
        "product-demo",
        "Демонстрація продукту",
        "Показ продукту в дії",
        "Product demonstration showing the product in use or highlighting key features. Clear and informative.",
    ),
    CreativeFormat(
        "lifestyle",
        "Lifestyle",
        "Продукт у житті",
        "Lifestyle imagery showing the product/service in real-life context. Aspirational and relatable.",
    ),
    CreativeFormat(
        "problem-solution",
        "Проблема-Рішення",
        "Як продукт вирішує проблему",
        "Visual representation of a problem and how the product/service solves it. Clear narrative flow.",
    ),
    CreativeFormat(
        "stat-highlight",
        "Статистика",
        "Виділення цифр та результатів",
        "Data-driven design highlighting impressive statistics or results. Bold numbers and clean layout.",
    ),
    CreativeFormat(
        "comparison",
        "Порівняння",
        "Порівняння з конкурентами",
        "Side-by-side comparison with competitors or alternatives. Clear differentiation.",
    ),
    CreativeFormat(
        "announcement",
        "Анонс",
        "Новий продукт/функція",
        "New product/feature announcement. Exciting and attention-grabbing.",
    ),
    CreativeFormat(
        "seasonal",
        "Сезонний",
        "Святковий/сезонний креатив",
        "Seasonal or holiday-themed creative. Timely and relevant.",
    ),
)

_FORMATS_BY_ID = {f.id: f for f in CREATIVE_FORMATS}

GENERIC_FORMAT_INSTRUCTIONS = "Standard advertising creative with clear value proposition and call-to-action."

NEGATIVE_PROMPT = (
    "low quality, blurry, pixelated, distorted, ugly, bad anatomy, bad proportions, watermark, "
    "text errors, spelling mistakes, unprofessional, cluttered, messy, poor composition"
)

# Image models tend to drift into English unless the language is stated up
# front and again at the very end.
_LANGUAGE_DIRECTIVES: dict[str, tuple[str, str]] = {
    "uk": (
        "🌐 LANGUAGE (MANDATORY): UKRAINIAN (українська мова)\n"
        "ВАЖЛИВО: Весь текст на креативі (заголовки, слогани, кнопки, підписи, написи) має бути "
        "ВИКЛЮЧНО українською мовою. НЕ використовуй англійську чи будь-яку іншу мову.",
        "🌐 НАГАДУВАННЯ: Кожне слово тексту на зображенні: ТІЛЬКИ українською мовою (Ukrainian only).",
    ),
    "ru": (
        "🌐 LANGUAGE (MANDATORY): RUSSIAN (русский язык)\n"
        "ВАЖНО: Весь текст на креативе (заголовки, слоганы, кнопки, подписи, надписи) должен быть "
        "ИСКЛЮЧИТЕЛЬНО на русском языке. НЕ используй английский или любой другой язык.",
        "🌐 НАПОМИНАНИЕ: Каждое слово текста на изображении: ТОЛЬКО на русском языке (Russian only).",
    ),
    "en": (
        "🌐 LANGUAGE (MANDATORY): ENGLISH\n"
        "IMPORTANT: All text on the creative (headlines, slogans, buttons, captions, labels) MUST be "
        "EXCLUSIVELY in English. Do NOT use any other language.",
        "🌐 REMINDER: Every word of text in the image must be in English only.",
    ),
}

# Stories/Reels overlay geometry on a 1080x1920 canvas.
SAFE_ZONE_TOP_PX = 250
SAFE_ZONE_BOTTOM_PX = 250
STORY_HEIGHT_PX = 1920


def get_format_instructions(format_id: str) -> str:
    fmt = _FORMATS_BY_ID.get(format_id)
    return fmt.instructions if fmt else GENERIC_FORMAT_INSTRUCTIONS


def build_negative_prompt() -> str:
    return NEGATIVE_PROMPT


def build_safe_zone_directive() -> str:
    safe_end = STORY_HEIGHT_PX - SAFE_ZONE_BOTTOM_PX
    return (
        "🚨 CRITICAL STORIES FORMAT REQUIREMENTS (1080x1920):\n"
        "- SAFE ZONE: Keep ALL TEXT and IMPORTANT ELEMENTS within the central area\n"
        f"- TOP {SAFE_ZONE_TOP_PX} PIXELS: DO NOT place any text or important content (Instagram/Facebook interface)\n"
        f"- BOTTOM {SAFE_ZONE_BOTTOM_PX} PIXELS: DO NOT place any text or important content (Instagram/Facebook interface)\n"
        f"- SAFE CONTENT AREA: Only pixels {SAFE_ZONE_TOP_PX}-{safe_end} (vertical) are guaranteed visible\n"
        "- Text and logo MUST be centered vertically in the safe zone\n"
        "- Background/visuals can fill the entire 1080x1920 canvas\n"
    )


def _reference_section(roles: frozenset[str], audience_name: str, pain_points: str) -> str:
    out = "\n📸 REFERENCE IMAGES PROVIDED:\n"
    if "template" in roles:
        out += (
            "\n🎨 TEMPLATE / BACKGROUND:\n"
            "- Use this image as the base layout and background of the creative\n"
            "- Keep its visual style, color palette and composition\n"
            f"- Adapt it so it resonates with {audience_name}\n"
        )
    if "person" in roles:
        out += (
            "\n👤 PERSON / PRODUCT:\n"
            "- Feature this person or product as the focal subject of the creative\n"
            "- Keep the subject recognizable; do not alter its identity or key details\n"
            f"- Show how it solves the pain points: {pain_points}\n"
        )
    if "logo" in roles:
        out += (
            "\n🏷️ LOGO:\n"
            "- Place this logo clearly and legibly, without distorting it\n"
            "- Ensure proper placement and visibility without overwhelming the main message\n"
        )
    out += (
        "\n🧩 COMPOSITING ORDER:\n"
        "1. Background/template first\n"
        "2. Person/product layered on top of the background\n"
        "3. Logo placed last, on top of everything\n"
        "\n⚠️ CRITICAL INSTRUCTION:\n"
        f"The reference images provide the STYLE and ELEMENTS, but the composited creative MUST still target "
        f"{audience_name}. The TARGET AUDIENCE determines the CONTENT and EMOTIONAL TONE.\n"
    )
    return out


def build_creative_prompt(ctx: CreativePromptContext) -> str:
    """
    Build the image-generation prompt for one creative.

    Used by both structured generation (with a format archetype) and chat
    generation (format is None). Output is deterministic for a given context.
    """
    lang = normalize_language(ctx.language)
    directive, reminder = _LANGUAGE_DIRECTIVES[lang]
    audience = ctx.audience
    pain_points = ", ".join(audience.pain_points)
    needs = ", ".join(audience.needs)
    features = "\n".join(f"- {f}" for f in ctx.key_features) or "- Not specified"

    width, height = size_dimensions(ctx.size)
    ratio = resolve_aspect_ratio(ctx.size)

    prompt = f"""{directive}

Create a professional advertising creative for social media (Facebook/Instagram).

PROJECT CONTEXT:
{ctx.project_summary}

KEY FEATURES:
{features}

BRAND VOICE: {ctx.brand_voice}

🎯 PRIMARY TARGET AUDIENCE (CRITICAL - ALL CONTENT MUST BE ADAPTED FOR THIS AUDIENCE):
Name: {audience.name}
Description: {audience.description}
Pain Points: {pain_points}
Needs: {needs}
Demographics: {audience.demographics_text()}
"""

    if ctx.format is not None:
        prompt += f"\nCREATIVE FORMAT: {get_format_instructions(ctx.format)}\n"

    prompt += f"\nSIZE: {width}x{height} pixels (aspect ratio {ratio})\n"

    if ratio == "9:16":
        prompt += "\n" + build_safe_zone_directive()

    if ctx.reference_roles:
        prompt += _reference_section(ctx.reference_roles, audience.name, pain_points)

    if ctx.style_notes:
        prompt += f"\nADDITIONAL STYLE NOTES: {ctx.style_notes}\n"

    prompt += f"""
STYLE REQUIREMENTS:
- High-quality, professional design
- Eye-catching and engaging for {audience.name}
- Clear visual hierarchy
- Mobile-optimized
- Brand-appropriate colors and aesthetics
- Visual elements that directly address the pain points and needs of {audience.name}

🎯 FINAL REMINDER: This creative is specifically for {audience.name}. Every element should speak to their needs ({needs}) and address their pain points ({pain_points}).

{reminder}"""
    return prompt


def build_resize_prompt(target_size: str) -> str:
    """Prompt for re-laying-out an existing creative into a new aspect ratio."""
    width, height = size_dimensions(target_size)
    dims = f"{width}x{height}"

    prompt = f"""Recreate this exact same advertising banner/creative in the NEW size: {dims}.

CRITICAL REQUIREMENTS:
1. Keep EXACTLY the same:
   - All text content (word for word, character for character)
   - All visual elements (images, graphics, logos)
   - Color scheme and style
   - Brand identity and messaging
   - Layout composition (adapt proportions to new aspect ratio)

2. Adapt ONLY the layout to fit the new {dims} dimensions:
   - Reposition elements to fit the new aspect ratio
   - Maintain visual balance and hierarchy
   - Ensure all text remains readable
   - Keep the same design language
"""
    if resolve_aspect_ratio(target_size) == "9:16":
        prompt += "\n" + build_safe_zone_directive() + "\n"

    prompt += f"""
3. Output specifications:
   - Size: {dims} pixels
   - Same quality and resolution as original
   - Professional advertising standard

DO NOT change any content, text, or visual elements - ONLY adapt the layout to the new dimensions."""
    return prompt
