from __future__ import annotations

from dataclasses import dataclass, field
from string import Template

from ads_ai.models import ScrapedContent, normalize_language


# Field names every template asks for; parsing relies on them.
ANALYSIS_FIELDS = ("summary", "key_features", "brand_voice", "target_audiences")
SEGMENT_FIELDS = ("id", "name", "description", "pain_points", "needs", "demographics")

# Segment-count bounds each template declares.
SEGMENT_BOUNDS: dict[str, tuple[int, int]] = {
    "project": (3, 5),
    "website": (3, 5),
    "screenshot": (3, 5),
    "description": (3, 5),
    "subproject": (2, 4),
}

SUBPROJECT_TYPES: dict[str, dict[str, str]] = {
    "uk": {"webinar": "вебінар", "landing": "лендінг", "campaign": "кампанія"},
    "ru": {"webinar": "вебинар", "landing": "лендинг", "campaign": "кампания"},
    "en": {"webinar": "webinar", "landing": "landing page", "campaign": "campaign"},
}


@dataclass(frozen=True)
class AnalysisPrompt:
    kind: str
    language: str
    text: str
    # Inline images (PNG/JPEG bytes) sent alongside the text, e.g. a page screenshot.
    images: list[bytes] = field(default_factory=list)

    @property
    def segment_bounds(self) -> tuple[int, int]:
        return SEGMENT_BOUNDS[self.kind]


_RESPONSE_FORMAT = {
    "uk": """ФОРМАТ ВІДПОВІДІ (JSON):
{
  "summary": "$summary_hint",
  "key_features": ["Особливість 1", "Особливість 2", "Особливість 3"],
  "brand_voice": "professional",
  "target_audiences": [
    {
      "id": "segment_1",
      "name": "Назва сегменту",
      "description": "Детальний опис аудиторії",
      "pain_points": ["Біль 1", "Біль 2", "Біль 3"],
      "needs": ["Потреба 1", "Потреба 2", "Потреба 3"],
      "demographics": {
        "age": "25-40",
        "gender": "all/male/female",
        "location": "Україна, великі міста",
        "income": "середній/вище середнього"
      }
    }
  ]
}

Поле demographics може бути об'єктом з ключами age, gender, location, income або простим рядком.
Пиши всі текстові значення українською мовою.
Відповідай ТІЛЬКИ валідним JSON без додаткового тексту.""",
    "ru": """ФОРМАТ ОТВЕТА (JSON):
{
  "summary": "$summary_hint",
  "key_features": ["Особенность 1", "Особенность 2", "Особенность 3"],
  "brand_voice": "professional",
  "target_audiences": [
    {
      "id": "segment_1",
      "name": "Название сегмента",
      "description": "Детальное описание аудитории",
      "pain_points": ["Боль 1", "Боль 2", "Боль 3"],
      "needs": ["Потребность 1", "Потребность 2", "Потребность 3"],
      "demographics": {
        "age": "25-40",
        "gender": "all/male/female",
        "location": "Россия, крупные города",
        "income": "средний/выше среднего"
      }
    }
  ]
}

Поле demographics может быть объектом с ключами age, gender, location, income или простой строкой.
Пиши все текстовые значения на русском языке.
Отвечай ТОЛЬКО валидным JSON без дополнительного текста.""",
    "en": """RESPONSE FORMAT (JSON):
{
  "summary": "$summary_hint",
  "key_features": ["Feature 1", "Feature 2", "Feature 3"],
  "brand_voice": "professional",
  "target_audiences": [
    {
      "id": "segment_1",
      "name": "Segment name",
      "description": "Detailed audience description",
      "pain_points": ["Pain 1", "Pain 2", "Pain 3"],
      "needs": ["Need 1", "Need 2", "Need 3"],
      "demographics": {
        "age": "25-40",
        "gender": "all/male/female",
        "location": "USA, major cities",
        "income": "middle/above average"
      }
    }
  ]
}

The demographics field may be an object with keys age, gender, location, income or a plain string.
Write all text values in English.
Respond ONLY with valid JSON without additional text.""",
}

_SUMMARY_HINT = {
    "uk": "Короткий опис продукту/послуги",
    "ru": "Краткое описание продукта/услуги",
    "en": "Brief product/service description",
}

_TEMPLATES: dict[str, dict[str, str]] = {
    "project": {
        "uk": """
Проаналізуй веб-сайт та визнач цільові аудиторії для рекламних креативів.

КОНТЕНТ САЙТУ:
$content

ЗАВДАННЯ:
1. Визнач 3-5 ключових сегментів цільової аудиторії
2. Для КОЖНОГО сегменту визнач:
   - Назву сегменту (коротко, 2-4 слова)
   - Детальний опис (хто це, вік, інтереси, рівень доходу)
   - 3-5 основних болей/проблем
   - 3-5 потреб/бажань
   - Демографічні дані (вік, стать, локація, дохід)

3. Загальна інформація про продукт:
   - Короткий опис (1-2 речення)
   - Ключові особливості (3-5 пунктів)
   - Тон голосу бренду (professional/casual/friendly/luxury тощо)

$response_format""",
        "ru": """
Проанализируй веб-сайт и определи целевые аудитории для рекламных креативов.

КОНТЕНТ САЙТА:
$content

ЗАДАЧА:
1. Определи 3-5 ключевых сегментов целевой аудитории
2. Для КАЖДОГО сегмента определи:
   - Название сегмента (коротко, 2-4 слова)
   - Детальное описание (кто это, возраст, интересы, уровень дохода)
   - 3-5 основных болей/проблем
   - 3-5 потребностей/желаний
   - Демографические данные (возраст, пол, локация, доход)

3. Общая информация о продукте:
   - Краткое описание (1-2 предложения)
   - Ключевые особенности (3-5 пунктов)
   - Тон голоса бренда (professional/casual/friendly/luxury и т.д.)

$response_format""",
        "en": """
Analyze the website and identify target audiences for advertising creatives.

WEBSITE CONTENT:
$content

TASK:
1. Identify 3-5 key target audience segments
2. For EACH segment define:
   - Segment name (brief, 2-4 words)
   - Detailed description (who they are, age, interests, income level)
   - 3-5 main pain points/problems
   - 3-5 needs/desires
   - Demographic data (age, gender, location, income)

3. General product information:
   - Brief description (1-2 sentences)
   - Key features (3-5 points)
   - Brand voice tone (professional/casual/friendly/luxury etc.)

$response_format""",
    },
    "subproject": {
        "uk": """
Проаналізуй веб-сторінку (вебінар/лендінг/кампанія) та визнач цільові аудиторії для рекламних креативів.

КОНТЕКСТ: Це під-проект типу "$type" - $name

КОНТЕНТ СТОРІНКИ:
$content

ЗАВДАННЯ:
1. Визнач 2-4 ключових сегментів цільової аудиторії для цього конкретного $type_text
2. Для КОЖНОГО сегменту визнач:
   - Назву сегменту (коротко, 2-4 слова)
   - Детальний опис (хто це, вік, інтереси, мотивація відвідати цей $type_text)
   - 3-5 основних болів/проблем які вирішує цей $type_text
   - 3-5 потреб/бажань
   - Демографічні дані (вік, стать, локація, дохід)

3. Загальна інформація про $type_text:
   - Короткий опис (1-2 речення) - про що цей $type_text
   - Ключові особливості (3-5 пунктів) - що унікального пропонується
   - Тон голосу (professional/casual/friendly/luxury тощо)

$response_format""",
        "ru": """
Проанализируй веб-страницу (вебинар/лендинг/кампания) и определи целевые аудитории для рекламных креативов.

КОНТЕКСТ: Это под-проект типа "$type" - $name

КОНТЕНТ СТРАНИЦЫ:
$content

ЗАДАЧА:
1. Определи 2-4 ключевых сегмента целевой аудитории для этого конкретного $type_text
2. Для КАЖДОГО сегмента определи:
   - Название сегмента (коротко, 2-4 слова)
   - Детальное описание (кто это, возраст, интересы, мотивация посетить этот $type_text)
   - 3-5 основных болей/проблем, которые решает этот $type_text
   - 3-5 потребностей/желаний
   - Демографические данные (возраст, пол, локация, доход)

3. Общая информация о $type_text:
   - Краткое описание (1-2 предложения) - о чем этот $type_text
   - Ключевые особенности (3-5 пунктов) - что уникального предлагается
   - Тон голоса (professional/casual/friendly/luxury и т.д.)

$response_format""",
        "en": """
Analyze the web page (webinar/landing/campaign) and identify target audiences for advertising creatives.

CONTEXT: This is a sub-project of type "$type" - $name

PAGE CONTENT:
$content

TASK:
1. Identify 2-4 key target audience segments for this specific $type_text
2. For EACH segment define:
   - Segment name (brief, 2-4 words)
   - Detailed description (who they are, age, interests, motivation to visit this $type_text)
   - 3-5 main pain points/problems this $type_text solves
   - 3-5 needs/desires
   - Demographic data (age, gender, location, income)

3. General $type_text information:
   - Brief description (1-2 sentences) - what this $type_text is about
   - Key features (3-5 points) - what unique value is offered
   - Voice tone (professional/casual/friendly/luxury etc.)

$response_format""",
    },
    "website": {
        "uk": """Проведи глибокий візуальний та змістовий аналіз веб-сайту за URL: $url

Я надаю тобі скріншот повної сторінки та її детальний контекст.

1. **Візуальний аналіз скріншоту**:
   - Опиши загальний стиль, кольорову гаму та атмосферу
   - Що зображено на головному банері? Які емоції це викликає?
   - Які візуальні акценти використовуються для закликів до дії (CTA)?

2. **Змістовий аналіз**:
   - Про що цей сайт? Яка головна ціннісна пропозиція?
   - Які ключові переваги виділено?
   - Який тон комунікації (Brand Voice)?

3. **Аналіз аудиторії**:
   - Хто є ідеальним клієнтом? Які болі та потреби вирішує цей продукт?
   - Сформуй 3-5 детальних сегментів цільової аудиторії, для кожного мінімум 3 болі та 3 потреби

КОНТЕКСТ САЙТУ:
$content

$response_format""",
        "ru": """Проведи глубокий визуальный и содержательный анализ веб-сайта по URL: $url

Я предоставляю тебе скриншот всей страницы и её детальный контекст.

1. **Визуальный анализ скриншота**:
   - Опиши общий стиль, цветовую гамму и атмосферу
   - Что изображено на главном баннере? Какие эмоции это вызывает?
   - Какие визуальные акценты используются для призывов к действию (CTA)?

2. **Содержательный анализ**:
   - О чём этот сайт? Каково главное ценностное предложение?
   - Какие ключевые преимущества выделены?
   - Какой тон коммуникации (Brand Voice)?

3. **Анализ аудитории**:
   - Кто идеальный клиент? Какие боли и потребности решает этот продукт?
   - Сформируй 3-5 детальных сегментов целевой аудитории, для каждого минимум 3 боли и 3 потребности

КОНТЕКСТ САЙТА:
$content

$response_format""",
        "en": """Perform a deep visual and content analysis of the website at URL: $url

I am providing a full-page screenshot and its detailed context.

1. **Visual analysis of the screenshot**:
   - Describe the overall style, color palette and atmosphere
   - What is shown on the main banner? What emotions does it evoke?
   - Which visual accents are used for calls to action (CTA)?

2. **Content analysis**:
   - What is this site about? What is the main value proposition?
   - Which key benefits are highlighted?
   - What is the communication tone (Brand Voice)?

3. **Audience analysis**:
   - Who is the ideal customer? Which pain points and needs does the product solve?
   - Build 3-5 detailed target audience segments, each with at least 3 pain points and 3 needs

WEBSITE CONTEXT:
$content

$response_format""",
    },
    "screenshot": {
        "uk": """Проаналізуй скріншот веб-сайту або рекламного матеріалу.

Визнач 3-5 сегментів цільової аудиторії, для кожного вкажи болі, потреби та демографічні характеристики.
Опиши продукт, його ключові особливості та тон бренду (формальний, дружній, професійний тощо).

$response_format""",
        "ru": """Проанализируй скриншот веб-сайта или рекламного материала.

Определи 3-5 сегментов целевой аудитории, для каждого укажи боли, потребности и демографические характеристики.
Опиши продукт, его ключевые особенности и тон бренда (формальный, дружелюбный, профессиональный и т.д.).

$response_format""",
        "en": """Analyze the screenshot of a website or advertising material.

Identify 3-5 target audience segments, each with pain points, needs and demographics.
Describe the product, its key features and the brand voice (formal, friendly, professional etc.).

$response_format""",
    },
    "description": {
        "uk": """Проаналізуй опис бізнесу/продукту: "$content"

Визнач 3-5 сегментів цільової аудиторії, для кожного вкажи болі, потреби та демографічні характеристики.
Опиши продукт, його ключові особливості та тон бренду (формальний, дружній, професійний тощо).

$response_format""",
        "ru": """Проанализируй описание бизнеса/продукта: "$content"

Определи 3-5 сегментов целевой аудитории, для каждого укажи боли, потребности и демографические характеристики.
Опиши продукт, его ключевые особенности и тон бренда (формальный, дружелюбный, профессиональный и т.д.).

$response_format""",
        "en": """Analyze the business/product description: "$content"

Identify 3-5 target audience segments, each with pain points, needs and demographics.
Describe the product, its key features and the brand voice (formal, friendly, professional etc.).

$response_format""",
    },
}


def _render(kind: str, language: str, **values: str) -> str:
    lang = normalize_language(language)
    response_format = Template(_RESPONSE_FORMAT[lang]).substitute(
        summary_hint=values.pop("summary_hint", _SUMMARY_HINT[lang])
    )
    return Template(_TEMPLATES[kind][lang]).substitute(response_format=response_format, **values)


def build_project_analysis_prompt(content: ScrapedContent, language: str = "uk") -> AnalysisPrompt:
    lang = normalize_language(language)
    return AnalysisPrompt(kind="project", language=lang, text=_render("project", lang, content=content.to_json()))


def build_subproject_analysis_prompt(
    content: ScrapedContent,
    subproject_type: str,
    subproject_name: str,
    language: str = "uk",
) -> AnalysisPrompt:
    lang = normalize_language(language)
    type_text = SUBPROJECT_TYPES[lang].get(subproject_type) or SUBPROJECT_TYPES["uk"].get(subproject_type) or subproject_type
    text = _render(
        "subproject",
        lang,
        content=content.to_json(),
        type=subproject_type,
        type_text=type_text,
        name=subproject_name,
    )
    return AnalysisPrompt(kind="subproject", language=lang, text=text)


def build_website_analysis_prompt(content: ScrapedContent, language: str = "uk") -> AnalysisPrompt:
    """Visual + content analysis; attaches the page screenshot when one was captured."""
    lang = normalize_language(language)
    text = _render("website", lang, url=content.url, content=content.to_context())
    images = [content.screenshot] if content.screenshot else []
    return AnalysisPrompt(kind="website", language=lang, text=text, images=images)


def build_screenshot_analysis_prompt(image: bytes, language: str = "uk") -> AnalysisPrompt:
    lang = normalize_language(language)
    return AnalysisPrompt(kind="screenshot", language=lang, text=_render("screenshot", lang), images=[image])


def build_description_analysis_prompt(description: str, language: str = "uk") -> AnalysisPrompt:
    lang = normalize_language(language)
    return AnalysisPrompt(kind="description", language=lang, text=_render("description", lang, content=description))
