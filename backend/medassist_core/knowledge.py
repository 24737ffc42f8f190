from __future__ import annotations

from typing import Any


MEDICATION_VOCABULARY = ("aspirin", "ibuprofen", "tylenol", "advil", "warfarin", "metformin", "insulin")
BODY_PART_VOCABULARY = ("head", "chest", "stomach", "back", "arm", "leg", "throat", "ear", "eye", "nose")

POSITIVE_LEXICON = ("good", "great", "better", "improving", "fine", "ok", "okay", "well", "thanks", "thank you")
NEGATIVE_LEXICON = ("bad", "worse", "terrible", "awful", "pain", "hurt", "sick", "worried", "concerned", "scared")

SEVERITY_WORDS = ("severe", "mild", "moderate", "intense", "extreme", "slight")

BOOKING_TRIGGERS = ("book now", "schedule appointment", "book", "schedule", "check availability")


COMMON_SYMPTOMS: dict[str, dict[str, Any]] = {
    "headache": {
        "description": "Headaches can be caused by tension, migraines, dehydration, or other factors.",
        "severity": "moderate",
        "recommendations": [
            "Stay hydrated",
            "Rest in a quiet, dark room",
            "Consider over-the-counter pain relief if appropriate",
            "See a doctor if severe or persistent",
        ],
    },
    "fever": {
        "description": "Fever is usually a sign of infection. Normal body temperature is around 98.6°F (37°C).",
        "severity": "moderate",
        "recommendations": [
            "Rest and stay hydrated",
            "Monitor temperature regularly",
            "Use fever-reducing medication if appropriate",
            "Seek medical care if fever is high (>103°F) or persists",
        ],
    },
    "cough": {
        "description": "Coughs can be dry or productive, and may indicate respiratory issues.",
        "severity": "mild",
        "recommendations": [
            "Stay hydrated",
            "Use a humidifier",
            "Avoid irritants like smoke",
            "See a doctor if persistent or accompanied by other symptoms",
        ],
    },
    "nausea": {
        "description": "Nausea can be caused by various factors including infections, medications, or digestive issues.",
        "severity": "moderate",
        "recommendations": [
            "Stay hydrated with small sips",
            "Avoid heavy or spicy foods",
            "Rest",
            "Seek care if severe or persistent",
        ],
    },
}

SPECIALTIES = {
    "cardiology": "Heart and cardiovascular system",
    "dermatology": "Skin conditions",
    "endocrinology": "Hormones and metabolism",
    "gastroenterology": "Digestive system",
    "neurology": "Nervous system and brain",
    "orthopedics": "Bones, joints, and muscles",
    "pediatrics": "Children's health",
    "psychiatry": "Mental health",
}

WELLNESS_TIPS = {
    "nutrition": [
        "Eat a balanced diet with fruits and vegetables",
        "Stay hydrated (8 glasses of water daily)",
        "Limit processed foods",
        "Control portion sizes",
    ],
    "exercise": [
        "Aim for 150 minutes of moderate exercise per week",
        "Include strength training 2x per week",
        "Stay active throughout the day",
        "Find activities you enjoy",
    ],
    "sleep": [
        "Aim for 7-9 hours of sleep per night",
        "Maintain a regular sleep schedule",
        "Create a relaxing bedtime routine",
        "Avoid screens before bed",
    ],
    "mental": [
        "Practice stress management techniques",
        "Stay connected with friends and family",
        "Take breaks when needed",
        "Consider meditation or mindfulness",
    ],
}

# Entries are directional: a pairing may be listed under one medication only.
MEDICATION_INTERACTIONS: dict[str, dict[str, Any]] = {
    "aspirin": {
        "interactions": ["warfarin", "ibuprofen", "naproxen"],
        "warnings": "May increase bleeding risk when combined with blood thinners",
    },
    "ibuprofen": {
        "interactions": ["aspirin", "warfarin", "lithium"],
        "warnings": "Can increase risk of stomach bleeding and kidney problems",
    },
    "warfarin": {
        "interactions": ["aspirin", "ibuprofen", "vitamin k"],
        "warnings": "Many medications and foods can affect blood thinning levels",
    },
}

TRIAGE_ACTIONS = {
    "emergency": "Contact emergency services immediately",
    "urgent": "Seek emergency care or urgent care within hours",
    "moderate": "Schedule an appointment within 24-48 hours",
    "routine": "Schedule a routine appointment",
}

EMERGENCY_KEYWORDS = ("chest pain", "can't breathe", "unconscious", "severe bleeding", "heart attack", "stroke")
URGENT_KEYWORDS = ("high fever", "severe pain", "difficulty breathing", "persistent vomiting")


def domain_summary() -> dict[str, list[str]]:
    return {
        "common_symptoms": list(COMMON_SYMPTOMS),
        "specialties": list(SPECIALTIES),
        "wellness_categories": list(WELLNESS_TIPS),
    }
