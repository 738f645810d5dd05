"""
Messaging carrier configuration constants.

These are fixed values that don't change per environment.
Environment-specific values (account SID, auth token, sender number) are
loaded through Settings.
"""

# Twilio-compatible REST API
TWILIO_API_BASE_URL = "https://api.twilio.com"
TWILIO_MESSAGES_PATH = "/2010-04-01/Accounts/{account_sid}/Messages.json"
TWILIO_SIGNATURE_HEADER = "X-Twilio-Signature"

WHATSAPP_ADDRESS_PREFIX = "whatsapp:"

# Channel recorded on every check-in received through the webhook
CHECKIN_SOURCE = "whatsapp"

MESSAGE_TYPES = ("daily", "weekly", "biweekly")
DEFAULT_MESSAGE_TYPE = "weekly"
DEFAULT_LANGUAGE = "en"

# Check-in request templates, keyed by language then frequency
MESSAGE_TEMPLATES = {
    "en": {
        "weekly": (
            "Hi {name}! 👋 How was your week? Reply with:\n"
            "1 = Terrible 😞\n2 = Poor 😕\n3 = Okay 😐\n4 = Good 😊\n5 = Great! 🎉\n\n"
            "Feel free to add any comments too!"
        ),
        "daily": "Hi {name}! 👋 How are you feeling today? Reply 1-5 (1=bad, 5=great) and add any thoughts!",
        "biweekly": "Hi {name}! 👋 How have the past 2 weeks been? Rate 1-5 and share what's on your mind!",
    },
    "sw": {
        "weekly": (
            "Hujambo {name}! 👋 Wiki hii ilikuwaje? Jibu kwa:\n"
            "1 = Mbaya sana 😞\n2 = Mbaya 😕\n3 = Sawa 😐\n4 = Nzuri 😊\n5 = Nzuri sana! 🎉\n\n"
            "Unaweza kuongeza maoni yako pia!"
        ),
        "daily": "Hujambo {name}! 👋 Unahisije leo? Jibu 1-5 (1=mbaya, 5=nzuri) na ongeza mawazo yako!",
        "biweekly": "Hujambo {name}! 👋 Wiki 2 zilizopita zilikuwaje? Kadiria 1-5 na shiriki mawazo yako!",
    },
}

ACKNOWLEDGMENT_TEMPLATES = {
    "named": "Thank you {name}! Your feedback helps us build a better workplace. 🙏",
    "anonymous": "Thank you for your anonymous feedback! 🙏",
}
