"""Rule tables for the Critic, keyed by language.

Checks read phrases for the reply's language together with the English
entries, so mixed-language replies are judged on both.
"""

EMPATHY_PHRASES: dict[str, list[str]] = {
    "en": [
        "i hear you",
        "i understand",
        "i know how",
        "it's normal",
        "it's okay",
        "you're not alone",
        "i'm here",
        "i care",
        "your feelings",
        "completely normal",
        "valid",
        "challenging",
        "overwhelming",
        "difficult",
        "struggling",
    ],
    "hi": [
        "मैं सुन रहा हूं",
        "मैं आपकी बात सुन रहा हूं",
        "मैं समझता हूं",
        "यह सामान्य है",
        "सामान्य है",
        "आप अकेले नहीं हैं",
        "आपकी भावनाएं",
        "मैं अभी आपके साथ हूं",
    ],
    "es": [
        "te escucho",
        "entiendo",
        "es normal",
        "no estás solo",
        "estoy aquí",
        "tus sentimientos",
        "válid",
    ],
}

# Symbols match anywhere; words match on word boundaries
STEP_SYMBOLS = ["•", "- ", "* ", "1.", "2.", "3."]

STEP_WORDS: dict[str, list[str]] = {
    "en": [
        "take", "do", "try", "start", "begin", "practice", "call", "write",
        "breathe", "walk", "meditate", "exercise", "reach out",
    ],
    "hi": ["लें", "करें", "शुरू करें", "प्रयास करें", "कॉल करें", "लिखें"],
    "es": ["respira", "escribe", "llama", "empieza", "camina", "haz", "prueba"],
}

MEDICAL_TERMS: dict[str, list[str]] = {
    "en": [
        "diagnosis", "diagnose", "treatment", "treat", "therapy", "medication",
        "prescription", "doctor", "psychiatrist", "psychologist", "clinical",
        "medical", "cure", "disorder", "symptom", "syndrome",
    ],
    "hi": ["निदान", "उपचार", "दवा", "डॉक्टर", "चिकित्सा", "इलाज", "रोग", "लक्षण"],
    "es": ["diagnóstico", "tratamiento", "medicación", "receta", "psiquiatra", "trastorno", "síntoma"],
}

MEDICAL_SYNONYMS: dict[str, str] = {
    "diagnosis": "understanding",
    "diagnose": "understand",
    "treatment": "support",
    "treat": "support",
    "therapy": "support",
    "medication": "self-care",
    "prescription": "suggestion",
    "doctor": "trusted professional",
    "psychiatrist": "counsellor",
    "psychologist": "counsellor",
    "clinical": "practical",
    "medical": "wellness",
    "cure": "ease",
    "disorder": "difficulty",
    "symptom": "sign",
    "syndrome": "pattern",
    "निदान": "समझ",
    "उपचार": "सहायता",
    "दवा": "देखभाल",
    "डॉक्टर": "विशेषज्ञ",
    "चिकित्सा": "सहायता",
    "इलाज": "सहायता",
    "रोग": "कठिनाई",
    "लक्षण": "संकेत",
    "diagnóstico": "comprensión",
    "tratamiento": "apoyo",
    "medicación": "autocuidado",
    "receta": "sugerencia",
    "psiquiatra": "consejero",
    "trastorno": "dificultad",
    "síntoma": "señal",
}

EMPATHETIC_OPENERS: dict[str, str] = {
    "en": "I hear you, and it's okay to feel this way. ",
    "hi": "मैं आपकी बात सुन रहा हूं, और यह सामान्य है। ",
    "es": "Te escucho, y es normal sentirse así. ",
}

FIXED_STEPS: dict[str, str] = {
    "en": "\n\n• Take 3 deep breaths\n• Think of something positive\n• Talk to someone",
    "hi": "\n\n• 3 गहरी सांसें लें\n• कुछ अच्छा सोचें\n• किसी से बात करें",
    "es": "\n\n• Respira profundamente 3 veces\n• Piensa en algo positivo\n• Habla con alguien",
}

CHECK_ISSUES: dict[str, str] = {
    "is_empathetic": 'Add empathetic language (e.g., "I hear you", "I understand")',
    "has_concrete_steps": "Include specific, actionable steps with bullet points",
    "is_language_consistent": "Ensure the response is written in {language}",
    "has_medical_claims": "Remove any medical/clinical claims or diagnostic language",
}

# Action-strength heuristics
IMPERATIVE_VERBS = [
    "do", "make", "write", "list", "set", "plan", "walk", "breathe", "call",
    "schedule", "pack", "review", "limit", "cap", "focus", "break", "start",
    "finish", "prepare", "apply",
]

VAGUE_PHRASES = ["i understand", "you're not alone", "this is tough", "take a deep breath"]

MIN_BULLETS = 2
MIN_IMPERATIVES = 3
MAX_VAGUE_HITS = 2
MAX_RESPONSE_CHARS = 1200
