from __future__ import annotations

import random
from typing import Callable, Sequence


TemplateSelector = Callable[[int], int]


def random_selector(seed: int | None = None) -> TemplateSelector:
    rng = random.Random(seed)

    def _select(count: int) -> int:
        return rng.randrange(count)

    return _select


def fixed_selector(index: int = 0) -> TemplateSelector:
    def _select(count: int) -> int:
        return index % count

    return _select


def pick(templates: Sequence[str], selector: TemplateSelector) -> str:
    return templates[selector(len(templates))]


EMERGENCY_RESPONSE = (
    "If you're experiencing a medical emergency, please contact emergency services (call 911) or go to your "
    "nearest emergency room immediately. Do not wait. This includes chest pain, difficulty breathing, severe "
    "injuries, or loss of consciousness. This assistant cannot provide emergency medical assistance."
)

DISCLAIMER = "⚠️ For proper diagnosis and treatment, please consult with a healthcare professional."
MEDICATION_DISCLAIMER = "⚠️ Always consult your pharmacist or doctor about medication interactions."
APOLOGY_RESPONSE = "Sorry, I encountered an error. Please try again."
SESSION_REQUIRED_RESPONSE = "I can't continue this conversation without a session. Please start a new session and try again."

RESPONSE_TEMPLATES: dict[str, tuple[str, ...]] = {
    "greeting": (
        "Hello! I'm your healthcare assistant. How can I help you with your health concerns today?",
        "Hi there! I'm here to assist with your healthcare needs. What can I help you with?",
        "Welcome! I'm your medical assistant. How may I assist you today?",
        "Hello! I'm here to help with your health questions. What would you like to know?",
    ),
    "goodbye": (
        "Take care of yourself! Remember to consult a healthcare professional for serious concerns.",
        "Stay healthy! Don't hesitate to reach out if you have more questions.",
        "Goodbye! Wishing you good health. Please consult a doctor for medical emergencies.",
        "Take care! For urgent medical issues, please contact emergency services immediately.",
    ),
    "help": (
        "I can help you with: general health information, symptom guidance, appointment scheduling, medication "
        "reminders, wellness tips, and answering health-related questions. However, I'm not a replacement for "
        "professional medical advice. For serious symptoms or emergencies, please consult a healthcare provider "
        "immediately.",
        "I assist with healthcare information, symptoms, appointments, and general wellness. Please note: I provide "
        "general information only and cannot diagnose or treat. Always consult a qualified healthcare professional "
        "for medical advice.",
        "I'm here to provide general health information and guidance. I can help with symptoms, appointments, "
        "medications, and wellness. Important: For medical emergencies, call emergency services. For diagnosis and "
        "treatment, consult a healthcare provider.",
    ),
    "symptom": (
        "I understand you're experiencing symptoms. While I can provide general information, it's important to "
        "consult with a healthcare professional for proper diagnosis. Can you tell me more about when these "
        "symptoms started?",
        "Thank you for sharing your symptoms. For accurate diagnosis and treatment, I recommend scheduling an "
        "appointment with a healthcare provider. Would you like help finding a doctor?",
        "I hear your concern about these symptoms. For your safety, please consult a healthcare professional. If "
        "symptoms are severe or life-threatening, seek emergency care immediately.",
    ),
    "appointment": (
        "I can help you schedule an appointment! You can book through our online portal or call our scheduling "
        "line at (555) 123-4567.",
        "To schedule an appointment, you can visit our website, use our mobile app, or call us.",
        "I'd be happy to help you schedule an appointment. You can book online 24/7 or call our office during "
        "business hours.",
    ),
    "medication": (
        "For medication questions, it's best to consult with your pharmacist or prescribing doctor. They can provide "
        "specific information about dosages, interactions, and side effects. Is there a specific medication you're "
        "asking about?",
        "I can provide general medication information, but for specific questions about your prescriptions, please "
        "contact your healthcare provider or pharmacist. They have access to your medical history and can give "
        "personalized advice.",
        "Medication safety is important. For questions about your medications, side effects, or interactions, please "
        "speak with your doctor or pharmacist directly.",
    ),
    "wellness": (
        "Great question about wellness! Some general tips: stay hydrated, get regular exercise, maintain a balanced "
        "diet, get adequate sleep (7-9 hours), and manage stress. Would you like more specific wellness advice?",
        "Wellness is important for overall health. Key areas include: nutrition, physical activity, mental health, "
        "sleep, and preventive care. What aspect of wellness would you like to focus on?",
        "I'm glad you're thinking about wellness! Regular check-ups, healthy eating, exercise, and stress management "
        "are all important. Is there a specific wellness goal you're working toward?",
    ),
    "specialty": (
        "Specialists focus on specific areas of care, such as cardiology, dermatology, or neurology. Which area are "
        "you interested in? I can explain what each specialist does.",
        "A referral to the right specialist depends on your symptoms. Tell me which specialty you have in mind, and "
        "I can share what it covers.",
    ),
    "general": (
        "I understand your concern. For accurate medical information, I recommend consulting with a healthcare "
        "professional. Is there a specific health topic I can help you learn more about?",
        "Thank you for sharing. I can provide general health information, but for personalized medical advice, "
        "please consult your healthcare provider. What would you like to know more about?",
        "I'm here to help with general health information. For specific medical concerns, diagnosis, or treatment, "
        "please see a qualified healthcare professional. How else can I assist you?",
    ),
}

QUICK_ACTIONS: dict[str, tuple[str, ...]] = {
    "emergency": ("Contact Emergency Services", "Find ER"),
    "greeting": ("Check Symptoms", "Schedule Appointment", "Wellness Tips"),
    "goodbye": (),
    "help": ("Symptoms", "Appointments", "Medications", "Wellness"),
    "symptom": ("Schedule Appointment", "Find Doctor", "More Info"),
    "symptom_general": ("Schedule Appointment", "Find Doctor", "Tell Me More"),
    "appointment": ("Book Now", "Find Doctor", "Check Availability"),
    "medication": ("Find Pharmacy", "Contact Doctor"),
    "wellness": ("Nutrition Tips", "Exercise Guide", "Sleep Advice"),
    "wellness_category": ("More Tips", "Schedule Checkup"),
    "specialty": ("Find Specialist", "Schedule Appointment"),
    "triage": ("Schedule Appointment", "Find Doctor"),
    "general": ("Get Help", "Find Doctor"),
}

EMERGENCY_QUICK_ACTION = "Contact Emergency Services"


def quick_actions_for(key: str, *, urgency: str | None = None) -> list[str]:
    actions = list(QUICK_ACTIONS.get(key, QUICK_ACTIONS["general"]))
    if urgency in {"CRITICAL", "HIGH"} and EMERGENCY_QUICK_ACTION not in actions:
        actions.insert(0, EMERGENCY_QUICK_ACTION)
    return actions
