"""Crisis lexicons and localized crisis response bundles.

Keyword lists are matched as lowercase substrings of the message. A turn is
scanned with its own language's list, the English list and every
high-weight keyword. Each matched keyword is weighted by the first severity
class whose entries it contains (high = 2, medium = 1, anything else = 0.5).

Response text uses ``{name}`` / ``{number}`` placeholders for the configured
helpline.
"""

from sarthi.models import CrisisSeverity, CrisisType

DEFAULT_LANGUAGE = "en"

CRISIS_KEYWORDS: dict[str, list[str]] = {
    "en": [
        # Self-harm and suicidal ideation
        "kill myself", "end my life", "want to die", "suicide", "self-harm",
        "hurt myself", "cut myself", "overdose", "take pills", "jump off",
        "hang myself", "shoot myself", "no reason to live", "better off dead",
        "everyone would be better", "no one would miss me", "can't take it anymore",
        "tired of living", "life is not worth it", "want to disappear",
        # Acute distress and panic
        "panic attack", "can't breathe", "heart attack", "going crazy",
        "losing my mind", "mental breakdown", "nervous breakdown",
        "complete breakdown", "falling apart", "losing control",
        "can't function", "can't cope", "overwhelmed completely",
        # Violence and harm to others
        "hurt someone", "kill someone", "violent thoughts", "want to hurt",
        "anger out of control", "losing my temper", "violent urges",
        # Urgency indicators
        "emergency", "urgent help", "immediate danger", "right now",
        "this moment", "can't wait", "need help now", "desperate",
        "hopeless", "helpless", "trapped", "no way out",
    ],
    "hi": [
        "मैं मर जाऊंगा", "जान दे दूंगा", "आत्महत्या", "खुद को मार लूंगा",
        "जीने का मन नहीं", "मरना चाहता हूं", "खुद को नुकसान", "काट लूंगा",
        "गोली मार लूंगा", "फांसी लगा लूंगा", "ओवरडोज", "गोलियां खा लूंगा",
        "जीने का कोई मतलब नहीं", "सब बेहतर होगा", "कोई याद नहीं करेगा",
        "बर्दाश्त नहीं हो रहा", "जीवन व्यर्थ है", "गायब हो जाना चाहता हूं",
        "पैनिक अटैक", "सांस नहीं आ रही", "दिल का दौरा", "पागल हो रहा हूं",
        "दिमाग खराब हो गया", "मानसिक टूटन", "पूरी तरह टूट गया",
        "कंट्रोल नहीं हो रहा", "काम नहीं कर पा रहा", "सहन नहीं हो रहा",
        "किसी को मार दूंगा",
        "आपातकाल", "तुरंत मदद", "खतरा", "अभी", "इस वक्त", "इंतजार नहीं",
        "निराश", "लाचार", "फंस गया", "कोई रास्ता नहीं",
    ],
    "es": [
        "matarme", "suicidarme", "acabar con mi vida", "morir", "autolesionarme",
        "cortarme", "sobredosis", "colgarme", "dispararme", "no quiero vivir",
        "ataque de pánico", "no puedo respirar", "infarto", "me estoy volviendo loco",
        "emergencia", "ayuda urgente", "desesperado", "sin esperanza",
    ],
}

HIGH_SEVERITY_KEYWORDS: list[str] = [
    "kill myself", "suicide", "end my life", "want to die",
    "hurt someone", "kill someone", "violent thoughts",
    "panic attack", "heart attack", "can't breathe",
    "मैं मर जाऊंगा", "आत्महत्या", "जान दे दूंगा",
    "खुद को मार लूंगा", "किसी को मार दूंगा",
    "matarme", "suicidarme", "acabar con mi vida", "no quiero vivir",
    "ataque de pánico", "no puedo respirar", "infarto",
]

MEDIUM_SEVERITY_KEYWORDS: list[str] = [
    "self-harm", "hurt myself", "cut myself", "overdose",
    "going crazy", "losing my mind", "mental breakdown",
    "खुद को नुकसान", "काट लूंगा", "ओवरडोज",
    "पागल हो रहा हूं", "दिमाग खराब",
    "autolesionarme", "cortarme", "sobredosis", "me estoy volviendo loco",
]

KEYWORD_WEIGHTS = {"high": 2.0, "medium": 1.0, "low": 0.5}

# (minimum score, severity), checked in order
SEVERITY_THRESHOLDS: list[tuple[float, CrisisSeverity]] = [
    (4.0, CrisisSeverity.CRITICAL),
    (3.0, CrisisSeverity.HIGH),
    (2.0, CrisisSeverity.MEDIUM),
]

# Crisis types in resolution priority order with the substrings that mark
# them. Self-directed markers name the self so that other-directed phrases
# such as "kill someone" resolve to violence.
CRISIS_TYPE_MARKERS: list[tuple[CrisisType, tuple[str, ...]]] = [
    (CrisisType.SUICIDAL, (
        "kill myself", "suicid", "die", "dead", "end my life", "hang myself", "shoot myself",
        "मर", "आत्महत्या", "जान दे", "खुद को मार", "गोली मार", "फांसी",
        "matarme", "morir", "acabar con mi vida", "vivir", "colgarme", "dispararme",
    )),
    (CrisisType.SELF_HARM, (
        "hurt myself", "cut myself", "harm", "overdose",
        "नुकसान", "काट", "ओवरडोज", "गोलियां खा",
        "cortar", "autolesion", "sobredosis",
    )),
    (CrisisType.VIOLENCE, ("someone", "want to hurt", "violent", "anger", "temper", "किसी को मार")),
    (CrisisType.PANIC, ("panic", "can't breathe", "पैनिक", "सांस", "pánico", "respirar")),
    (CrisisType.ACUTE_DISTRESS, ("breakdown", "crazy", "losing", "पागल", "टूट", "loco")),
]


def _bundle(
    immediate: str,
    steps: list[str],
    breathing: str | None,
    defer: bool,
    human: bool,
) -> dict:
    return {
        "immediate_response": immediate,
        "next_steps": steps,
        "breathing_exercise": breathing,
        "should_defer_advice": defer,
        "requires_human_intervention": human,
    }


CRISIS_BUNDLES: dict[str, dict[CrisisSeverity, dict]] = {
    "en": {
        CrisisSeverity.CRITICAL: _bundle(
            "I'm here with you right now, and I'm very concerned about what you're sharing. "
            "Your safety is the most important thing. Please call {name} immediately at {number}. "
            "This is a 24/7 crisis helpline. You are not alone, and there are people who want "
            "to help you. Your life matters.",
            [
                "Call {name} helpline: {number}",
                "Stay with someone you trust",
                "Remove any harmful objects from your space",
                "Remember: this feeling will pass",
            ],
            "Take 4 slow breaths: inhale for 4 counts, hold for 4, exhale for 4, hold for 4. Repeat.",
            True,
            True,
        ),
        CrisisSeverity.HIGH: _bundle(
            "I'm concerned about what you're sharing. Please know you're not alone. For immediate "
            "support, call {name} at {number}. This is a 24/7 crisis helpline. Your safety matters, "
            "and there are people who want to help you.",
            [
                "Call {name} helpline: {number}",
                "Reach out to someone you trust",
                "Take deep breaths",
                "You're not alone in this",
            ],
            "Breathe in slowly for 4 counts, hold for 4, breathe out for 4. Repeat 5 times.",
            True,
            False,
        ),
        CrisisSeverity.MEDIUM: _bundle(
            "I hear you, and I want to make sure you're safe. If you're having thoughts of harming "
            "yourself, please call {name} at {number}. You don't have to go through this alone.",
            [
                "Call {name} if you need immediate support: {number}",
                "Talk to someone you trust",
                "Practice deep breathing",
                "Remember: this moment doesn't define your future",
            ],
            None,
            False,
            False,
        ),
        CrisisSeverity.LOW: _bundle(
            "I'm here to support you. If you ever feel overwhelmed or have thoughts of harming "
            "yourself, please know that {name} is available 24/7 at {number}. You're not alone.",
            [
                "Keep the {name} number handy: {number}",
                "Talk to someone you trust",
                "Practice self-care",
                "You're doing better than you think",
            ],
            None,
            False,
            False,
        ),
    },
    "hi": {
        CrisisSeverity.CRITICAL: _bundle(
            "मैं अभी आपके साथ हूं, और मैं आपकी सुरक्षा के बारे में बहुत चिंतित हूं। कृपया तुरंत {name} को "
            "{number} पर कॉल करें। यह 24/7 क्राइसिस हेल्पलाइन है। आप अकेले नहीं हैं, और आपकी जान "
            "मायने रखती है।",
            [
                "{name} हेल्पलाइन कॉल करें: {number}",
                "किसी भरोसेमंद व्यक्ति के साथ रहें",
                "अपने आसपास से हानिकारक वस्तुओं को हटा दें",
                "याद रखें: यह भावना गुजर जाएगी",
            ],
            "4 धीमी सांसें लें: 4 गिनती तक सांस लें, 4 तक रोकें, 4 तक छोड़ें, 4 तक रोकें। दोहराएं।",
            True,
            True,
        ),
        CrisisSeverity.HIGH: _bundle(
            "मैं आपकी बात सुन रहा हूं और चिंतित हूं। कृपया {name} को {number} पर कॉल करें। यह 24/7 "
            "क्राइसिस हेल्पलाइन है। आपकी सुरक्षा मायने रखती है।",
            [
                "{name} हेल्पलाइन कॉल करें: {number}",
                "किसी भरोसेमंद व्यक्ति से बात करें",
                "गहरी सांसें लें",
                "आप इसमें अकेले नहीं हैं",
            ],
            "4 गिनती तक धीरे सांस लें, 4 तक रोकें, 4 तक छोड़ें। 5 बार दोहराएं।",
            True,
            False,
        ),
        CrisisSeverity.MEDIUM: _bundle(
            "मैं आपकी बात सुन रहा हूं और आपकी सुरक्षा सुनिश्चित करना चाहता हूं। अगर आपको खुद को नुकसान "
            "पहुंचाने के विचार आ रहे हैं, तो कृपया {name} को {number} पर कॉल करें।",
            [
                "अगर तुरंत सहायता चाहिए तो {name} कॉल करें: {number}",
                "किसी भरोसेमंद व्यक्ति से बात करें",
                "गहरी सांसें लें",
                "याद रखें: यह क्षण आपके भविष्य को परिभाषित नहीं करता",
            ],
            None,
            False,
            False,
        ),
        CrisisSeverity.LOW: _bundle(
            "मैं आपकी सहायता के लिए यहां हूं। अगर आप कभी भी अभिभूत महसूस करते हैं, तो {name} 24/7 "
            "उपलब्ध है: {number}। आप अकेले नहीं हैं।",
            [
                "{name} नंबर हाथ में रखें: {number}",
                "किसी भरोसेमंद व्यक्ति से बात करें",
                "आत्म-देखभाल करें",
                "आप सोचते हैं उससे बेहतर कर रहे हैं",
            ],
            None,
            False,
            False,
        ),
    },
    "es": {
        CrisisSeverity.CRITICAL: _bundle(
            "Estoy aquí contigo ahora mismo y me preocupa mucho lo que compartes. Tu seguridad es "
            "lo más importante. Por favor llama a {name} de inmediato al {number}. Es una línea de "
            "crisis disponible 24/7. No estás solo y hay personas que quieren ayudarte. Tu vida importa.",
            [
                "Llama a la línea {name}: {number}",
                "Quédate con alguien de confianza",
                "Aleja cualquier objeto peligroso de tu espacio",
                "Recuerda: este sentimiento pasará",
            ],
            "Respira lento 4 veces: inhala 4 tiempos, sostén 4, exhala 4, sostén 4. Repite.",
            True,
            True,
        ),
        CrisisSeverity.HIGH: _bundle(
            "Me preocupa lo que compartes. No estás solo. Para apoyo inmediato, llama a {name} al "
            "{number}. Es una línea de crisis disponible 24/7. Tu seguridad importa.",
            [
                "Llama a la línea {name}: {number}",
                "Habla con alguien de confianza",
                "Respira profundamente",
                "No estás solo en esto",
            ],
            "Inhala lento 4 tiempos, sostén 4, exhala 4. Repite 5 veces.",
            True,
            False,
        ),
        CrisisSeverity.MEDIUM: _bundle(
            "Te escucho y quiero asegurarme de que estés a salvo. Si tienes pensamientos de hacerte "
            "daño, por favor llama a {name} al {number}. No tienes que pasar por esto solo.",
            [
                "Llama a {name} si necesitas apoyo inmediato: {number}",
                "Habla con alguien de confianza",
                "Practica la respiración profunda",
                "Recuerda: este momento no define tu futuro",
            ],
            None,
            False,
            False,
        ),
        CrisisSeverity.LOW: _bundle(
            "Estoy aquí para apoyarte. Si alguna vez te sientes abrumado o tienes pensamientos de "
            "hacerte daño, {name} está disponible 24/7 al {number}. No estás solo.",
            [
                "Ten a mano el número de {name}: {number}",
                "Habla con alguien de confianza",
                "Cuida de ti",
                "Lo estás haciendo mejor de lo que crees",
            ],
            None,
            False,
            False,
        ),
    },
}

HELPLINE_SUFFIX: dict[str, str] = {
    "en": "(24/7 crisis support)",
    "hi": "(24/7 क्राइसिस सपोर्ट)",
    "es": "(apoyo en crisis 24/7)",
}

# Additive per-type changes. "append"/"prepend" extend next_steps,
# "replace_steps" replaces them, "append_immediate" extends the opening text.
CRISIS_TYPE_CUSTOMIZATIONS: dict[str, dict[CrisisType, dict]] = {
    "en": {
        CrisisType.SELF_HARM: {
            "append": ["Remove sharp objects from your environment", "Stay in a safe space"],
        },
        CrisisType.PANIC: {
            "breathing_exercise": "Box breathing: Inhale 4, hold 4, exhale 4, hold 4. Focus on counting.",
            "replace_steps": [
                "Find a quiet, safe place",
                "Practice box breathing",
                "Ground yourself: Name 5 things you can see, 4 you can touch, 3 you can hear, "
                "2 you can smell, 1 you can taste",
            ],
        },
        CrisisType.VIOLENCE: {
            "append_immediate": " If you're having thoughts of harming others, please call emergency "
            "services immediately.",
            "prepend": [
                "Call emergency services if needed",
                "Remove yourself from the situation",
                "Find a safe space",
            ],
        },
    },
    "hi": {
        CrisisType.SELF_HARM: {
            "append": ["अपने आसपास से धारदार चीज़ें हटा दें", "किसी सुरक्षित जगह पर रहें"],
        },
        CrisisType.PANIC: {
            "breathing_exercise": "बॉक्स ब्रीदिंग: 4 तक सांस लें, 4 रोकें, 4 छोड़ें, 4 रोकें। गिनती पर ध्यान दें।",
            "replace_steps": [
                "कोई शांत, सुरक्षित जगह खोजें",
                "बॉक्स ब्रीदिंग करें",
                "खुद को स्थिर करें: 5 चीज़ें जो दिखती हैं, 4 जिन्हें छू सकते हैं, 3 जो सुनाई देती हैं, "
                "2 जिनकी गंध आती है, 1 जिसका स्वाद आता है",
            ],
        },
        CrisisType.VIOLENCE: {
            "append_immediate": " अगर आपको दूसरों को नुकसान पहुंचाने के विचार आ रहे हैं, तो कृपया तुरंत "
            "आपातकालीन सेवाओं को कॉल करें।",
            "prepend": [
                "ज़रूरत हो तो आपातकालीन सेवाओं को कॉल करें",
                "उस स्थिति से खुद को दूर करें",
                "कोई सुरक्षित जगह खोजें",
            ],
        },
    },
    "es": {
        CrisisType.SELF_HARM: {
            "append": ["Aleja los objetos afilados de tu entorno", "Permanece en un lugar seguro"],
        },
        CrisisType.PANIC: {
            "breathing_exercise": "Respiración cuadrada: inhala 4, sostén 4, exhala 4, sostén 4. "
            "Concéntrate en contar.",
            "replace_steps": [
                "Busca un lugar tranquilo y seguro",
                "Practica la respiración cuadrada",
                "Conéctate con el presente: nombra 5 cosas que ves, 4 que puedes tocar, 3 que oyes, "
                "2 que hueles, 1 que saboreas",
            ],
        },
        CrisisType.VIOLENCE: {
            "append_immediate": " Si tienes pensamientos de dañar a otros, llama a los servicios de "
            "emergencia de inmediato.",
            "prepend": [
                "Llama a los servicios de emergencia si es necesario",
                "Aléjate de la situación",
                "Busca un lugar seguro",
            ],
        },
    },
}
