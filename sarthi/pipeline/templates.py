"""Localized template pools for the Composer.

Pools are keyed by part (validation, actions, nudge), then language, then
intent. A requested language without a pool falls back to English; an
intent without a pool falls back to ``therapy_support``.
"""

import logging

from sarthi.core.cache import CacheLayer
from sarthi.models import Intent

logger = logging.getLogger(__name__)

FALLBACK_LANGUAGE = "en"

VALIDATIONS: dict[str, dict[Intent, list[str]]] = {
    "en": {
        Intent.THERAPY_SUPPORT: [
            "I hear you, and it's completely normal to feel this way.",
            "Your feelings are valid, and you're not alone in this.",
            "I understand this is challenging, and it's okay to feel overwhelmed.",
        ],
        Intent.QUICK_TIP: [
            "Great question! Let me share a practical approach.",
            "That's a smart thing to focus on. Here's what can help.",
            "I love that you're thinking about this. Here's a simple solution.",
        ],
        Intent.PLAN_BUILDER: [
            "Let's break this down into manageable steps.",
            "I'm excited to help you create a plan for this goal.",
            "This is a great goal to work toward. Let's make it happen.",
        ],
        Intent.CRISIS: [
            "I'm here with you right now, and you're not alone.",
            "Your safety matters, and I want to help you get support.",
        ],
        Intent.SMALL_TALK: [
            "It's nice to chat with you!",
            "I appreciate you taking the time to connect.",
        ],
    },
    "hi": {
        Intent.THERAPY_SUPPORT: [
            "मैं आपकी बात सुन रहा हूं, और यह महसूस करना पूरी तरह सामान्य है।",
            "आपकी भावनाएं वैध हैं, और आप इसमें अकेले नहीं हैं।",
        ],
        Intent.QUICK_TIP: [
            "बहुत अच्छा सवाल! मैं एक व्यावहारिक दृष्टिकोण साझा करता हूं।",
            "यह ध्यान केंद्रित करने के लिए एक स्मार्ट बात है।",
        ],
        Intent.PLAN_BUILDER: [
            "चलिए इसे प्रबंधनीय कदमों में तोड़ते हैं।",
            "मैं आपकी इस लक्ष्य के लिए योजना बनाने में मदद करने के लिए उत्साहित हूं।",
        ],
        Intent.CRISIS: [
            "मैं अभी आपके साथ हूं, और आप अकेले नहीं हैं।",
            "आपकी सुरक्षा मायने रखती है।",
        ],
        Intent.SMALL_TALK: [
            "आपसे बात करना अच्छा लग रहा है!",
            "कनेक्ट करने के लिए समय निकालने के लिए धन्यवाद।",
        ],
    },
    "es": {
        Intent.THERAPY_SUPPORT: [
            "Te escucho, y es completamente normal sentirse así.",
            "Tus sentimientos son válidos y no estás solo en esto.",
        ],
        Intent.QUICK_TIP: [
            "¡Buena pregunta! Te comparto un enfoque práctico.",
            "Es algo inteligente en lo que enfocarse. Esto puede ayudar.",
        ],
        Intent.PLAN_BUILDER: [
            "Dividamos esto en pasos manejables.",
            "Me alegra ayudarte a crear un plan para esta meta.",
        ],
        Intent.CRISIS: [
            "Estoy aquí contigo ahora mismo y no estás solo.",
            "Tu seguridad importa y quiero ayudarte a conseguir apoyo.",
        ],
        Intent.SMALL_TALK: [
            "¡Qué bueno charlar contigo!",
            "Gracias por tomarte el tiempo de conectar.",
        ],
    },
}

ACTIONS: dict[str, dict[Intent, list[str]]] = {
    "en": {
        Intent.THERAPY_SUPPORT: [
            "Take 3 deep breaths right now",
            "Write down one thing you're grateful for",
            "Reach out to someone you trust",
            "Do something kind for yourself today",
        ],
        Intent.QUICK_TIP: [
            "Start with just 2 minutes",
            "Make it enjoyable and sustainable",
            "Track your progress, no matter how small",
            "Celebrate every step forward",
        ],
        Intent.PLAN_BUILDER: [
            "Break your goal into smaller steps",
            "Set specific times for each action",
            "Create accountability with a friend",
            "Review and adjust your plan weekly",
        ],
        Intent.CRISIS: [
            "Call KIRAN helpline at 1800-599-0019",
            "Stay with someone you trust",
            "Remove any harmful objects from your space",
            "Remember: this feeling will pass",
        ],
        Intent.SMALL_TALK: [
            "Share something positive from your day",
            "Tell me about something you enjoy",
            "Take a moment to notice how you're feeling",
        ],
    },
    "hi": {
        Intent.THERAPY_SUPPORT: [
            "अभी 3 गहरी सांसें लें",
            "एक चीज़ लिखें जिसके लिए आप आभारी हैं",
            "किसी भरोसेमंद व्यक्ति से संपर्क करें",
            "आज अपने लिए कुछ अच्छा करें",
        ],
        Intent.QUICK_TIP: [
            "सिर्फ 2 मिनट से शुरू करें",
            "इसे आनंददायक और टिकाऊ बनाएं",
            "अपनी प्रगति को ट्रैक करें",
            "हर छोटी सफलता का जश्न मनाएं",
        ],
        Intent.PLAN_BUILDER: [
            "अपने लक्ष्य को छोटे कदमों में तोड़ें",
            "हर कार्य के लिए विशिष्ट समय निर्धारित करें",
            "दोस्त के साथ जवाबदेही बनाएं",
            "साप्ताहिक रूप से अपनी योजना की समीक्षा करें",
        ],
        Intent.CRISIS: [
            "KIRAN हेल्पलाइन 1800-599-0019 पर कॉल करें",
            "किसी भरोसेमंद व्यक्ति के साथ रहें",
            "अपने आसपास से हानिकारक वस्तुओं को हटा दें",
            "याद रखें: यह भावना गुजर जाएगी",
        ],
        Intent.SMALL_TALK: [
            "अपने दिन की कुछ सकारात्मक बात साझा करें",
            "मुझे किसी ऐसी चीज़ के बारे में बताएं जो आपको पसंद है",
            "एक पल रुककर देखें कि आप कैसा महसूस कर रहे हैं",
        ],
    },
    "es": {
        Intent.THERAPY_SUPPORT: [
            "Respira profundamente 3 veces ahora mismo",
            "Escribe una cosa por la que estés agradecido",
            "Habla con alguien de confianza",
            "Haz algo amable por ti hoy",
        ],
        Intent.QUICK_TIP: [
            "Empieza con solo 2 minutos",
            "Hazlo agradable y sostenible",
            "Registra tu progreso, por pequeño que sea",
            "Celebra cada paso adelante",
        ],
        Intent.PLAN_BUILDER: [
            "Divide tu meta en pasos pequeños",
            "Fija horarios concretos para cada acción",
            "Busca a un amigo que te acompañe",
            "Revisa y ajusta tu plan cada semana",
        ],
        Intent.CRISIS: [
            "Llama a la línea KIRAN al 1800-599-0019",
            "Quédate con alguien de confianza",
            "Aleja cualquier objeto peligroso de tu espacio",
            "Recuerda: este sentimiento pasará",
        ],
        Intent.SMALL_TALK: [
            "Comparte algo positivo de tu día",
            "Cuéntame algo que disfrutes",
            "Tómate un momento para notar cómo te sientes",
        ],
    },
}

NUDGES: dict[str, dict[Intent, list[str]]] = {
    "en": {
        Intent.THERAPY_SUPPORT: [
            "You're doing better than you think.",
            "Every step forward counts, no matter how small.",
            "You have more strength than you realize.",
        ],
        Intent.QUICK_TIP: [
            "Small steps lead to big changes.",
            "Progress over perfection.",
            "You've got this!",
        ],
        Intent.PLAN_BUILDER: [
            "You're capable of amazing things.",
            "Your future self will thank you.",
            "Every expert was once a beginner.",
        ],
        Intent.CRISIS: [
            "You matter, and help is available.",
            "This moment doesn't define your future.",
            "You're not alone in this.",
        ],
        Intent.SMALL_TALK: [
            "Connection is a beautiful thing.",
            "Every conversation is an opportunity to grow.",
        ],
    },
    "hi": {
        Intent.THERAPY_SUPPORT: [
            "आप सोचते हैं उससे बेहतर कर रहे हैं।",
            "हर छोटा कदम भी मायने रखता है।",
            "आपमें आपकी सोच से ज्यादा ताकत है।",
        ],
        Intent.QUICK_TIP: [
            "छोटे कदम बड़े बदलाव लाते हैं।",
            "परफेक्शन से ज्यादा प्रगति महत्वपूर्ण है।",
            "आप यह कर सकते हैं!",
        ],
        Intent.PLAN_BUILDER: [
            "आप अद्भुत चीजें करने में सक्षम हैं।",
            "आपका भविष्य का स्वयं आपको धन्यवाद देगा।",
            "हर विशेषज्ञ कभी शुरुआती था।",
        ],
        Intent.CRISIS: [
            "आप महत्वपूर्ण हैं, और मदद उपलब्ध है।",
            "यह क्षण आपके भविष्य को परिभाषित नहीं करता।",
            "आप इसमें अकेले नहीं हैं।",
        ],
        Intent.SMALL_TALK: [
            "कनेक्शन एक सुंदर चीज़ है।",
            "हर बातचीत बढ़ने का अवसर है।",
        ],
    },
    "es": {
        Intent.THERAPY_SUPPORT: [
            "Lo estás haciendo mejor de lo que crees.",
            "Cada paso cuenta, por pequeño que sea.",
        ],
        Intent.QUICK_TIP: [
            "Los pasos pequeños generan grandes cambios.",
            "El progreso importa más que la perfección.",
        ],
        Intent.PLAN_BUILDER: [
            "Eres capaz de cosas increíbles.",
            "Tu yo del futuro te lo agradecerá.",
        ],
        Intent.CRISIS: [
            "Importas, y hay ayuda disponible.",
            "No estás solo en esto.",
        ],
        Intent.SMALL_TALK: [
            "Conectar es algo hermoso.",
            "Cada conversación es una oportunidad para crecer.",
        ],
    },
}

CTAS: dict[str, str] = {
    "en": "Want me to break this into a day plan?",
    "hi": "क्या आप चाहते हैं कि मैं इसे दिन की योजना में तोड़ दूं?",
    "es": "¿Quieres que lo divida en un plan diario?",
}

POOLS: dict[str, dict[str, dict[Intent, list[str]]]] = {
    "validation": VALIDATIONS,
    "actions": ACTIONS,
    "nudge": NUDGES,
}

# Used when tool data has no recognizable shape
GENERIC_ACTIONS: dict[str, list[str]] = {
    "en": ["Take a deep breath", "Be kind to yourself", "You're making progress"],
    "hi": ["एक गहरी सांस लें", "अपने प्रति दयालु रहें", "आप प्रगति कर रहे हैं"],
    "es": ["Respira profundamente", "Sé amable contigo", "Estás avanzando"],
}

WELLNESS_ACTIONS: dict[str, list[str]] = {
    "en": [
        "Your average wellness score is {score}/10",
        "Focus on one stress domain at a time",
        "Celebrate small improvements",
        "Track your progress daily",
    ],
    "hi": [
        "आपका औसत वेलनेस स्कोर {score}/10 है",
        "एक समय में एक तनाव क्षेत्र पर ध्यान दें",
        "छोटे सुधारों का जश्न मनाएं",
        "रोज़ अपनी प्रगति ट्रैक करें",
    ],
    "es": [
        "Tu puntuación media de bienestar es {score}/10",
        "Enfócate en un área de estrés a la vez",
        "Celebra las pequeñas mejoras",
        "Registra tu progreso cada día",
    ],
}


class TemplateStore:
    """Resolves template pools with language fallback and caches them."""

    def __init__(self, cache: CacheLayer) -> None:
        self._cache = cache

    def pool(self, language: str, intent: Intent, part: str) -> list[str]:
        """Template pool for ``(language, intent, part)``.

        Raises:
            KeyError: If *part* is not a known template part.
        """
        key = f"template:{language}:{intent.value}:{part}"
        cached, found = self._cache.templates.get(key)
        if found:
            return list(cached)

        by_language = POOLS[part]
        pools = by_language.get(language) or by_language[FALLBACK_LANGUAGE]
        resolved = pools.get(intent) or pools[Intent.THERAPY_SUPPORT]
        self._cache.set_template(key, tuple(resolved))
        return list(resolved)

    @staticmethod
    def cta(language: str) -> str:
        return CTAS.get(language, CTAS[FALLBACK_LANGUAGE])

    @staticmethod
    def generic_actions(language: str) -> list[str]:
        return list(GENERIC_ACTIONS.get(language, GENERIC_ACTIONS[FALLBACK_LANGUAGE]))

    @staticmethod
    def wellness_actions(language: str, score: float) -> list[str]:
        lines = WELLNESS_ACTIONS.get(language, WELLNESS_ACTIONS[FALLBACK_LANGUAGE])
        return [line.format(score=score) for line in lines]
