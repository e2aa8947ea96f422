"""Component vocabulary: descriptions, prompt guidelines and render order."""

REQUIRED_COMPONENTS = ("header", "hero", "footer")

# Offered to the analyzer model, in the order they are listed in the prompt.
COMPONENTS = {
    "header": "Navigation menu and branding",
    "hero": "Main banner with call-to-action",
    "footer": "Contact info and links",
    "about-us": "Company story and team",
    "services": "Service offerings grid",
    "contact-form": "Contact form with fields",
    "testimonials": "Customer reviews",
    "gallery": "Image showcase",
    "pricing": "Pricing plans",
}

GUIDELINES = {
    "header": "Navigation with logo, menu items, responsive hamburger menu",
    "hero": "Eye-catching banner with heading, description, call-to-action buttons",
    "about-us": "Personal/company introduction with highlights and achievements",
    "services": "Service offerings in card layout with descriptions",
    "contact-form": "Professional contact form with validation styling",
    "testimonials": "Two or three customer quotes with names and star ratings",
    "gallery": "Responsive image grid with captions and hover zoom",
    "pricing": "Three pricing tiers in cards with a highlighted recommended plan",
    "footer": "Footer with links, social icons (24px max), and copyright",
}

GENERIC_GUIDELINE = "Professional section with relevant content"

# Top-to-bottom page order used when rendering; generation order may differ.
RENDER_ORDER = (
    "header",
    "hero",
    "about-us",
    "services",
    "gallery",
    "testimonials",
    "pricing",
    "contact-form",
    "footer",
)

# Onboarding feature names -> component ids.
FEATURE_TO_COMPONENT = {
    "about": "about-us",
    "services": "services",
    "contact": "contact-form",
    "gallery": "gallery",
    "testimonials": "testimonials",
    "pricing": "pricing",
}

# (keywords matched against the business description, personality)
PERSONALITIES = [
    (("restaurant", "food", "cafe"), "warm, inviting, appetizing"),
    (("tech", "software", "app"), "modern, innovative, professional"),
    (("creative", "design", "art"), "creative, inspiring, artistic"),
    (("health", "medical", "fitness"), "trustworthy, clean, professional"),
    (("education", "school", "learning"), "educational, approachable, inspiring"),
]

DEFAULT_PERSONALITY = "professional, modern, trustworthy"

# Business context keyed by lowercased website type; unknown types use "services".
INDUSTRIES = {
    "restaurant": {
        "audience": "Food lovers, families, local diners",
        "goals": ("Showcase menu", "Enable reservations", "Build trust"),
        "key_sections": ("Menu display", "Location info", "Reviews", "Contact"),
    },
    "retail/e-commerce": {
        "audience": "Online shoppers, product seekers",
        "goals": ("Drive sales", "Showcase products", "Build brand"),
        "key_sections": ("Product catalog", "Shopping experience", "Trust signals"),
    },
    "services": {
        "audience": "Potential clients, B2B customers",
        "goals": ("Generate leads", "Establish expertise", "Convert visitors"),
        "key_sections": ("Service descriptions", "Portfolio", "Contact forms"),
    },
    "healthcare": {
        "audience": "Patients, caregivers, medical seekers",
        "goals": ("Build trust", "Provide information", "Enable appointments"),
        "key_sections": ("Services info", "Appointment booking", "Trust building"),
    },
}

DEFAULT_INDUSTRY = "services"

TONES = {
    "restaurant": "warm, inviting, appetizing",
    "services": "professional, trustworthy, solution-focused",
    "healthcare": "caring, professional, reassuring",
    "technology": "innovative, clear, forward-thinking",
}

DEFAULT_TONE = "professional, engaging"

MESSAGING = {
    "restaurant": ("Quality ingredients", "Authentic flavors", "Memorable experiences"),
    "services": ("Expert solutions", "Proven results", "Client success"),
}

DEFAULT_MESSAGING = ("Quality service", "Professional results")

GOAL_CALLS_TO_ACTION = {
    "Showcase menu": "View Our Menu",
    "Generate leads": "Get Free Consultation",
    "Enable appointments": "Book Appointment",
}

DEFAULT_CALL_TO_ACTION = "Get Started"
