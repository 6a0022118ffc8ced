"""User-facing copy for the itinerary conversation in English, French and Kwéyòl.

The controller never hardcodes display text: it receives a :class:`Translator`
and looks every fixed prompt or button label up by key.
"""

from __future__ import annotations

import logging
from typing import Dict, Mapping, Optional

from config import DEFAULT_LANGUAGE

logger = logging.getLogger(__name__)

SUPPORTED_LANGUAGES = ("en", "fr", "kw")
FALLBACK_LANGUAGE = "en"

TRANSLATIONS: Dict[str, Dict[str, str]] = {
    # Page
    "itineraryPlanner": {
        "en": "Itinerary Planner",
        "fr": "Planificateur d'Itinéraire",
        "kw": "Planifikatè Wout",
    },
    "itinerary_page_subtitle": {
        "en": "Let's plan your perfect trip to {town}!",
        "fr": "Planifions votre voyage parfait à {town} !",
        "kw": "Ann planifye vwayaj pafè ou a {town}!",
    },
    # Conversation
    "itinerary_greeting_new": {
        "en": "Hi, I'm Conch Shell, your friendly guide! I can help you create a personalized itinerary or learn more about our beautiful town. What would you like to do?",
        "fr": "Salut, je suis Conch Shell, votre guide amical ! Je peux vous aider à créer un itinéraire personnalisé ou à en apprendre davantage sur notre belle ville. Que souhaitez-vous faire ?",
        "kw": "Bonjou, mwen se Conch Shell, gid zanmitay ou! Mwen ka ede w kreye yon wout pèsonalize oswa aprann plis sou bèl vil nou an. Kisa ou ta renmen fè?",
    },
    "itinerary_option_create": {
        "en": "Create Itinerary",
        "fr": "Créer un Itinéraire",
        "kw": "Kreye Wout",
    },
    "itinerary_option_learn": {
        "en": "Learn About Town",
        "fr": "En savoir plus",
        "kw": "Aprann sou vil la",
    },
    "itinerary_greeting_start": {
        "en": "Great! I can help you create a personalized itinerary. First, what kind of activities are you interested in? (e.g., beaches, hiking, local food)",
        "fr": "Super! Je peux vous aider à créer un itinéraire personnalisé. D'abord, quels types d'activités vous intéressent? (ex: plages, randonnée, cuisine locale)",
        "kw": "Magnifik! Mwen ka ede ou kreye yon wout pèsonalize. Pou kòmanse, ki kalite aktivite ou enterese? (egzanp, plaj, randone, manje lokal)",
    },
    "itinerary_ask_duration": {
        "en": "Sounds great! And how many days will your trip be?",
        "fr": "Ça semble super! Et combien de jours durera votre voyage?",
        "kw": "Sa sonnen byen! E konbyen jou vwayaj ou a ap dire?",
    },
    "itinerary_invalid_duration": {
        "en": "Please enter a valid number of days ({min}-{max}).",
        "fr": "Veuillez entrer un nombre de jours valide ({min}-{max}).",
        "kw": "Tanpri antre yon kantite jou ki bon ({min}-{max}).",
    },
    "itinerary_ask_budget": {
        "en": "Perfect. What's your budget for the trip?",
        "fr": "Parfait. Quel est votre budget pour le voyage?",
        "kw": "Pafè. Ki bidjè ou genyen pou vwayaj la?",
    },
    "itinerary_budget_budget-friendly": {
        "en": "Budget-friendly",
        "fr": "Économique",
        "kw": "Pa chè",
    },
    "itinerary_budget_moderate": {
        "en": "Moderate",
        "fr": "Modéré",
        "kw": "Mwayen",
    },
    "itinerary_budget_luxury": {
        "en": "Luxury",
        "fr": "Luxe",
        "kw": "Liks",
    },
    "itinerary_generating": {
        "en": "Awesome! I'm finding the best local spots for you. This will just take a moment...",
        "fr": "Génial! Je cherche les meilleurs endroits pour vous. Cela ne prendra qu'un instant...",
        "kw": "Ekcelan! Mwen ap chèche pi bon kote pou ou. Sa pral pran yon ti moman...",
    },
    "itinerary_generation_failed": {
        "en": "I'm sorry, I couldn't generate an itinerary at this time. Please try again.",
        "fr": "Désolé, je n'ai pas pu générer d'itinéraire pour le moment. Veuillez réessayer.",
        "kw": "Eskize mwen, mwen pa t ka fè yon wout kounye a. Tanpri eseye ankò.",
    },
    "itinerary_selection_instruction": {
        "en": "Here are some suggestions based on your interests! Please select the activities you'd like to include in your itinerary.",
        "fr": "Voici quelques suggestions basées sur vos intérêts ! Veuillez sélectionner les activités que vous souhaitez inclure dans votre itinéraire.",
        "kw": "Men kèk sijesyon ki baze sou enterè ou! Tanpri chwazi aktivite ou ta renmen mete nan chimen ou.",
    },
    "create_my_itinerary": {
        "en": "Create My Itinerary",
        "fr": "Créer Mon Itinéraire",
        "kw": "Kreye Chimen Mwen",
    },
    "modify_selections": {
        "en": "Modify Selections",
        "fr": "Modifier les Sélections",
        "kw": "Chanje Seleksyon yo",
    },
    "itinerary_finalized_prompt_delivery": {
        "en": "Excellent choices! Your personalized itinerary is ready. How would you like to receive it?",
        "fr": "Excellents choix ! Votre itinéraire personnalisé est prêt. Comment souhaitez-vous le recevoir ?",
        "kw": "Chwa ekselan! Wout pèsonalize ou a pare. Kòman ou ta renmen resevwa li?",
    },
    "itinerary_restart": {
        "en": "Start Over",
        "fr": "Recommencer",
        "kw": "Kòmanse Anko",
    },
    "itinerary_input_placeholder": {
        "en": "Type your message...",
        "fr": "Écrivez votre message...",
        "kw": "Ekri mesaj ou a...",
    },
    "itinerary_email_button": {
        "en": "Email",
        "fr": "E-mail",
        "kw": "Imèl",
    },
    "itinerary_whatsapp_button": {
        "en": "WhatsApp",
        "fr": "WhatsApp",
        "kw": "WhatsApp",
    },
    "itinerary_no_thanks_button": {
        "en": "No, thanks",
        "fr": "Non, merci",
        "kw": "Non, mèsi",
    },
    "itinerary_ask_email": {
        "en": "Great! What email address should I send it to?",
        "fr": "Parfait! À quelle adresse e-mail dois-je l'envoyer?",
        "kw": "Pèfè! Nan ki adrès imèl mwen ta dwe voye li?",
    },
    "itinerary_ask_phone": {
        "en": "Got it! What's the best WhatsApp number to send it to? (e.g. +1758...)",
        "fr": "Compris! Quel numéro de téléphone dois-je utiliser pour WhatsApp? (ex: +1758...)",
        "kw": "Oke! Ki nimewo telefòn mwen ta dwe itilize pou WhatsApp? (egzanp +1758...)",
    },
    "itinerary_invalid_email": {
        "en": "That doesn't look like a valid email. Could you please double-check it?",
        "fr": "Cela ne semble pas être une adresse e-mail valide. Pourriez-vous vérifier à nouveau?",
        "kw": "Sa pa sanble yon adrès imel valab. Èske ou ka tcheke li ankò?",
    },
    "itinerary_invalid_phone": {
        "en": "That doesn't seem to be a valid phone number. Please enter a number with a country code.",
        "fr": "Cela ne semble pas être un numéro de téléphone valide. Veuillez entrer un numéro avec l'indicatif du pays.",
        "kw": "Sa pa sanble yon nimewo telefòn valab. Tanpri antre yon nimewo avèk kòd peyi a.",
    },
    "itinerary_final_confirmation": {
        "en": "All set! Your itinerary has been sent to {contact_info}. Enjoy your trip!",
        "fr": "Tout est prêt! Votre itinéraire a été envoyé à {contact_info}. Bon voyage!",
        "kw": "Tout pare! Mwen voye chimen ou an nan {contact_info}. Pwofite vwayaj ou!",
    },
    "itinerary_delivery_finished": {
        "en": "You got it. Is there anything else I can help you with today?",
        "fr": "Entendu. Y a-t-il autre chose que je puisse faire pour vous aujourd'hui ?",
        "kw": "Oke. Èske gen lòt bagay mwen ka ede ou avèk jodi a?",
    },
    "itinerary_town_info_fallback": {
        "en": "{town} is famous for its Friday Night Street Party, where locals and visitors enjoy amazing food and music. It's the heart of our community's vibrant culture!",
        "fr": "{town} est célèbre pour sa fête de rue du vendredi soir, où habitants et visiteurs profitent d'une cuisine et d'une musique formidables. C'est le cœur de la culture vibrante de notre communauté !",
        "kw": "{town} popilè pou fèt lari vandredi swa a, kote moun lokal ak vizitè ka pwofite bon manje ak mizik. Se kè kilti kominote nou an!",
    },
    # Sub-views
    "itinerary_day_heading": {
        "en": "Day {day}",
        "fr": "Jour {day}",
        "kw": "Jou {day}",
    },
    "itinerary_day_title": {
        "en": "Your Day {day} Adventure",
        "fr": "Votre aventure du jour {day}",
        "kw": "Avanti jou {day} ou",
    },
    "itinerary_placeholder_title": {
        "en": "Your Itinerary Awaits",
        "fr": "Votre itinéraire vous attend",
        "kw": "Wout ou ap tann ou",
    },
    "itinerary_placeholder_body": {
        "en": "Chat with our guide to build your personalized plan!",
        "fr": "Discutez avec notre guide pour créer votre plan personnalisé !",
        "kw": "Pale ak gid nou an pou fè plan pèsonalize ou!",
    },
}


def translate(
    key: str,
    language: str = DEFAULT_LANGUAGE,
    replacements: Optional[Mapping[str, object]] = None,
) -> str:
    """Look ``key`` up for ``language`` and substitute ``{name}`` placeholders.

    Unknown languages fall back to English and unknown keys return the key.
    """
    entry = TRANSLATIONS.get(key)
    if entry is None:
        logger.debug(f"Missing translation key: {key}")
        text = key
    else:
        text = entry.get(language) or entry.get(FALLBACK_LANGUAGE) or key

    for name, value in (replacements or {}).items():
        text = text.replace("{" + name + "}", str(value))
    return text


class Translator:
    """Callable ``t(key, replacements=None)`` bound to one language."""

    def __init__(self, language: str = DEFAULT_LANGUAGE) -> None:
        if language not in SUPPORTED_LANGUAGES:
            logger.warning(f"Unsupported language '{language}', using '{FALLBACK_LANGUAGE}'")
            language = FALLBACK_LANGUAGE
        self.language = language

    def __call__(self, key: str, replacements: Optional[Mapping[str, object]] = None) -> str:
        return translate(key, self.language, replacements)
