"""Conversation topics and the topic-specific vocabulary the tutor introduces.

Each vocabulary item has:
- word: the English word or phrase
- translation: German meaning, shown to the learner in brackets
- level: the CEFR level at which the item is introduced
- example: a short sentence using it
"""

TOPICS = [
    {
        "id": "daily-routines",
        "name": "Daily Routines",
        "description": "Talk about your typical day, morning habits, and evening activities",
        "icon": "\U0001f305",
    },
    {
        "id": "hobbies",
        "name": "Hobbies & Free Time",
        "description": "Discuss your interests, hobbies, and how you spend your leisure time",
        "icon": "\U0001f3a8",
    },
    {
        "id": "travel",
        "name": "Travel & Holidays",
        "description": "Share travel experiences, dream destinations, and holiday memories",
        "icon": "✈️",
    },
    {
        "id": "food",
        "name": "Food & Cooking",
        "description": "Talk about favorite foods, recipes, and dining experiences",
        "icon": "\U0001f373",
    },
    {
        "id": "work",
        "name": "Work & Career",
        "description": "Discuss your job, career goals, and workplace experiences",
        "icon": "\U0001f4bc",
    },
    {
        "id": "family",
        "name": "Family & Relationships",
        "description": "Talk about family members, friends, and important relationships",
        "icon": "\U0001f46a",
    },
    {
        "id": "health",
        "name": "Health & Fitness",
        "description": "Discuss exercise, wellness, and healthy lifestyle choices",
        "icon": "\U0001f3c3",
    },
    {
        "id": "entertainment",
        "name": "Entertainment",
        "description": "Talk about movies, music, books, and shows you enjoy",
        "icon": "\U0001f3ac",
    },
    {
        "id": "current-events",
        "name": "Current Events",
        "description": "Discuss news, trends, and what is happening in the world",
        "icon": "\U0001f4f0",
    },
    {
        "id": "future-plans",
        "name": "Dreams & Future Plans",
        "description": "Share your goals, aspirations, and plans for the future",
        "icon": "\U0001f31f",
    },
]


def _item(word: str, translation: str, level: str, example: str) -> dict:
    return {"word": word, "translation": translation, "level": level, "example": example}


VOCABULARY = {
    "daily-routines": [
        _item("wake up", "aufwachen", "A1", "I wake up at 7 AM."),
        _item("breakfast", "Frühstück", "A1", "I eat breakfast at 8 AM."),
        _item("routine", "Routine", "A2", "My morning routine is simple."),
        _item("commute", "pendeln", "A2", "My commute takes 30 minutes."),
        _item("hectic", "hektisch", "B1", "My mornings are usually hectic."),
        _item("wind down", "sich entspannen", "B1", "I wind down by reading before bed."),
        _item("juggle", "jonglieren (Aufgaben)", "B2", "I juggle work and personal life."),
        _item("ingrained", "tief verwurzelt", "C1", "These habits are ingrained in my daily life."),
    ],
    "hobbies": [
        _item("play", "spielen", "A1", "I play football."),
        _item("music", "Musik", "A1", "I listen to music."),
        _item("collect", "sammeln", "A2", "I collect stamps."),
        _item("enjoy", "genießen", "A2", "I enjoy cooking in my free time."),
        _item("unwind", "abschalten", "B1", "I unwind by playing guitar."),
        _item("creative outlet", "kreatives Ventil", "B1", "Painting is my creative outlet."),
        _item("avid", "begeistert", "B2", "I am an avid reader."),
        _item("cultivate", "pflegen", "C1", "I cultivate various interests."),
    ],
    "travel": [
        _item("trip", "Reise", "A1", "I went on a trip to Italy."),
        _item("beach", "Strand", "A1", "I love the beach."),
        _item("luggage", "Gepäck", "A2", "My luggage was very heavy."),
        _item("sightseeing", "Besichtigungen", "A2", "We went sightseeing in Rome."),
        _item("itinerary", "Reiseroute", "B1", "Our itinerary was very full."),
        _item("off the beaten track", "abseits der Touristenpfade", "B2", "I like places off the beaten track."),
        _item("wanderlust", "Fernweh", "C1", "My wanderlust never goes away."),
    ],
    "food": [
        _item("cook", "kochen", "A1", "I cook dinner every evening."),
        _item("delicious", "lecker", "A1", "The soup is delicious."),
        _item("recipe", "Rezept", "A2", "This is my grandmother's recipe."),
        _item("ingredients", "Zutaten", "A2", "You need only four ingredients."),
        _item("spicy", "scharf", "B1", "I love spicy food."),
        _item("savour", "genießen", "B2", "I like to savour every bite."),
        _item("palate", "Gaumen", "C1", "The wine pleased my palate."),
    ],
    "work": [
        _item("job", "Arbeit", "A1", "I like my job."),
        _item("office", "Büro", "A1", "I work in an office."),
        _item("colleague", "Kollege", "A2", "My colleague helps me a lot."),
        _item("deadline", "Frist", "B1", "We have a tight deadline."),
        _item("promotion", "Beförderung", "B1", "She got a promotion last year."),
        _item("workload", "Arbeitsbelastung", "B2", "My workload is heavy this month."),
        _item("leverage", "nutzen", "C1", "We leverage our experience."),
    ],
    "family": [
        _item("brother", "Bruder", "A1", "My brother lives in Berlin."),
        _item("parents", "Eltern", "A1", "My parents are retired."),
        _item("get along", "sich verstehen", "A2", "I get along well with my sister."),
        _item("close-knit", "eng verbunden", "B1", "We are a close-knit family."),
        _item("look up to", "aufschauen zu", "B2", "I look up to my grandfather."),
        _item("estranged", "entfremdet", "C1", "They were estranged for years."),
    ],
    "health": [
        _item("healthy", "gesund", "A1", "I try to eat healthy food."),
        _item("exercise", "Sport treiben", "A2", "I exercise three times a week."),
        _item("work out", "trainieren", "B1", "I work out at the gym."),
        _item("stamina", "Ausdauer", "B2", "Running improves my stamina."),
        _item("sedentary", "bewegungsarm", "C1", "A sedentary lifestyle is risky."),
    ],
    "entertainment": [
        _item("movie", "Film", "A1", "We watched a movie yesterday."),
        _item("series", "Serie", "A2", "I am watching a new series."),
        _item("plot", "Handlung", "B1", "The plot was very exciting."),
        _item("binge-watch", "am Stück schauen", "B2", "I binge-watched the whole season."),
        _item("riveting", "fesselnd", "C1", "The novel was riveting."),
    ],
    "current-events": [
        _item("news", "Nachrichten", "A1", "I read the news every morning."),
        _item("headline", "Schlagzeile", "A2", "The headline surprised me."),
        _item("issue", "Thema", "B1", "Climate change is a big issue."),
        _item("controversial", "umstritten", "B2", "It is a controversial decision."),
        _item("unprecedented", "beispiellos", "C1", "These are unprecedented times."),
    ],
    "future-plans": [
        _item("dream", "Traum", "A1", "My dream is to live by the sea."),
        _item("plan", "Plan", "A1", "I have a plan for next year."),
        _item("goal", "Ziel", "A2", "My goal is to speak English fluently."),
        _item("ambition", "Ehrgeiz", "B1", "She has a lot of ambition."),
        _item("pursue", "verfolgen", "B2", "I want to pursue a new career."),
        _item("culminate", "gipfeln", "C1", "My efforts will culminate in success."),
    ],
}


def get_topic(topic_id: str) -> dict | None:
    for topic in TOPICS:
        if topic["id"] == topic_id:
            return topic
    return None


def find_topic_by_name(name: str) -> dict | None:
    wanted = (name or "").strip().lower()
    for topic in TOPICS:
        if topic["name"].lower() == wanted:
            return topic
    return None


def topic_key(name: str) -> str:
    """Stable key used to mark a topic as completed: catalog id, or the custom topic text."""
    topic = find_topic_by_name(name) or get_topic(name)
    if topic:
        return topic["id"]
    return name.strip()
