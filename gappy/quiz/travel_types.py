"""
Travel-type catalogue
=====================

The quiz sorts every traveler into one of sixteen types.  Each code is four
letters, one per axis:

* ``G`` / ``S``: travels as a **G**roup or **S**olo
* ``R`` / ``D``: prefers **R**outine comfort or **D**iscovery
* ``L`` / ``H``: **L**ogic-driven or **H**eart-driven
* ``P`` / ``F``: **P**lans ahead or goes with the **F**low

The catalogue fills in display fields that a stored quiz result may be missing
and tells the ranking step which place types suit each traveler.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TravelTypeInfo:
    code: str
    name: str
    emoji: str
    description: str
    short_description: str
    recommended_types: tuple[str, ...]
    keywords: tuple[str, ...]


TRAVEL_TYPES: dict[str, TravelTypeInfo] = {
    info.code: info
    for info in (
        TravelTypeInfo(
            code="GRLP",
            name="The Itinerary CEO",
            emoji="📍",
            description=(
                "Travel is a spreadsheet. Zero waste, maximum city domination. Lives for "
                "optimized schedules and clever logistics, loves keeping everyone on track "
                "and happy, and prefers structured, efficient multi-stop adventures. Ideal "
                "day: Morning strategy session, curated group experiences, perfectly timed "
                "sunset viewpoint."
            ),
            short_description="Plans never falter, even with friends in tow",
            recommended_types=("tourist_attraction", "point_of_interest", "restaurant", "cafe", "shopping_mall"),
            keywords=("efficient", "planned", "group", "social", "organized"),
        ),
        TravelTypeInfo(
            code="GRLF",
            name="The Chaos Explorer",
            emoji="⚡",
            description=(
                "No plan? No problem. Alleys and intuition are the guide. Thrives on "
                "spontaneous discoveries, loves vibrant environments with social energy, "
                "and chases neon lights, street food, and last-minute adventures. Ideal "
                "day: Late start, backstreet wanderings, random pop-up events, night "
                "market crawl."
            ),
            short_description="Head out and turn into promising alleys",
            recommended_types=("point_of_interest", "tourist_attraction", "park", "natural_feature", "cafe"),
            keywords=("spontaneous", "explore", "adventure", "unplanned", "discovery"),
        ),
        TravelTypeInfo(
            code="GRHP",
            name="The Memory Host",
            emoji="🎈",
            description=(
                "The goal is everyone's smiles. Photos are just a bonus. Plans around "
                "group happiness and shared memories, blends structured fun with "
                "photogenic moments, and captures core memories through thoughtful "
                "scheduling. Ideal day: Cafe meet-ups, group workshops, themed dinner, "
                "golden-hour photo walk."
            ),
            short_description="Success is when everyone says they had fun",
            recommended_types=("tourist_attraction", "point_of_interest", "park", "amusement_park", "restaurant"),
            keywords=("memories", "social", "group", "fun", "photography"),
        ),
        TravelTypeInfo(
            code="GRHF",
            name="The Main-Character Tourist",
            emoji="🎉",
            description=(
                "Main character energy lights up the city, and nights are usually "
                "dramatic. Loves high-energy, spotlight-worthy experiences, thrives in "
                "crowds and statement moments, and makes every scene feel cinematic. "
                "Ideal day: Mid-morning glam brunch, daytime pop-ups, rooftop sunset, "
                "iconic nightlife hopping."
            ),
            short_description="High energy on location, doors open with vibes",
            recommended_types=("night_club", "bar", "amusement_park", "tourist_attraction", "restaurant"),
            keywords=("vibrant", "social", "nightlife", "entertainment", "energy"),
        ),
        TravelTypeInfo(
            code="GDHP",
            name="The Trip Director",
            emoji="🎬",
            description=(
                "Every trip has a theme, and even the afterglow is curated. Curates "
                "experiences like cinematic chapters, balances meaningful depth with "
                "group-friendly pacing, and creates rituals with symbolic bookends. Ideal "
                "day: Themed walking tour, show-stopping exhibit, craft cocktail night "
                "with debrief journaling."
            ),
            short_description="Edits wishes into one cohesive story",
            recommended_types=("tourist_attraction", "museum", "art_gallery", "point_of_interest", "spa"),
            keywords=("storytelling", "themed", "cultural", "meaningful", "curated"),
        ),
        TravelTypeInfo(
            code="GDHF",
            name="The Serendipity Chaser",
            emoji="✨",
            description=(
                "One reservation, then let the universe take over. Sets a poetic tone "
                "before following the vibes, collects meaningful coincidences and "
                "narrative moments, and prefers flexible flow with soulful stops. Ideal "
                "day: Gentle start, hidden cafes, street performances, twilight stroll "
                "through lantern-lit alleys."
            ),
            short_description="Detours are a talent. Serendipitous encounters are the reward",
            recommended_types=("point_of_interest", "tourist_attraction", "art_gallery", "park", "cafe"),
            keywords=("serendipity", "spontaneous", "discovery", "unexpected", "flow"),
        ),
        TravelTypeInfo(
            code="GDLP",
            name="The City Strategist",
            emoji="🧠",
            description=(
                "Cities are systems to understand from above and optimize along the way. "
                "Maps journeys like urban puzzles, focuses on architecture and "
                "infrastructure, and keeps time and movement elegantly tuned. Ideal day: "
                "Observation deck analysis, urban planning exhibit, multi-modal transit "
                "exploration."
            ),
            short_description="Designs routes that reveal the city, reverse-engineering movement",
            recommended_types=("tourist_attraction", "museum", "library", "point_of_interest", "shopping_mall"),
            keywords=("systematic", "urban", "strategic", "efficient", "analytical"),
        ),
        TravelTypeInfo(
            code="GDLF",
            name="The Glitch Hunter",
            emoji="🧪",
            description=(
                "Bugs over mainstream, always grinning at niche finds. Seeks oddities, "
                "subcultures, and fringe art, loves hidden basements, rare shops, and "
                "off-kilter cafes, and collects you-had-to-be-there stories. Ideal day: "
                "Vintage arcade raid, experimental gallery, midnight vending machine "
                "safari."
            ),
            short_description="Drawn to zones not found in guides",
            recommended_types=("establishment", "store", "point_of_interest", "art_gallery", "tourist_attraction"),
            keywords=("niche", "hidden", "unique", "offbeat", "exploration"),
        ),
        TravelTypeInfo(
            code="SRLP",
            name="The Ritual Traveler",
            emoji="🗂",
            description=(
                "Refine the classics and update last year's plan. Enjoys quiet "
                "refinement and repeat visits, finds calm in familiar kissaten and parks, "
                "and plans softly with room for nostalgic returns. Ideal day: Morning "
                "kissaten, curated bookstore browsing, sunset at a favorite park bench."
            ),
            short_description="Research quietly, move calmly. Precision increases with each visit",
            recommended_types=("cafe", "park", "tourist_attraction", "library", "museum"),
            keywords=("routine", "refined", "quiet", "familiar", "comfortable"),
        ),
        TravelTypeInfo(
            code="SRLF",
            name="The Silent Pathfinder",
            emoji="🗺",
            description=(
                "Silent navigator whose crowd avoidance is instinct. Loves hushed "
                "backstreets and riverside walks, moves efficiently while observing "
                "everything quietly, and finds flow in solitude and soft light. Ideal "
                "day: Sunrise stroll, hidden garden lunches, evening tram ride with "
                "headphones."
            ),
            short_description="Quiet but sees the optimal route",
            recommended_types=("park", "natural_feature", "point_of_interest", "tourist_attraction", "cafe"),
            keywords=("quiet", "solitary", "efficient", "peaceful", "navigation"),
        ),
        TravelTypeInfo(
            code="SRHP",
            name="The Comfort Curator",
            emoji="🫧",
            description=(
                "Comfort and gentleness always come first. Designs cozy, sensory-friendly "
                "itineraries, focuses on wellness, soft textures, and human warmth, and "
                "creates calm for themselves and loved ones. Ideal day: Slow brunch, "
                "restorative spa visit, low-key evening tea ceremony."
            ),
            short_description="Small, peaceful journeys feel right",
            recommended_types=("spa", "beauty_salon", "park", "cafe", "tourist_attraction"),
            keywords=("comfort", "gentle", "peaceful", "wellness", "relaxing"),
        ),
        TravelTypeInfo(
            code="SRHF",
            name="The Aesthetic Nomad",
            emoji="🎨",
            description=(
                "Choose places by light and sound, falling for quiet beauty every time. "
                "Chases delicate angles, subtle design, and harmonious soundscapes, "
                "prefers curated art experiences with gentle atmospheres, and documents "
                "soft, beautiful moments. Ideal day: Gallery hop, handcrafted dessert "
                "salon, golden-hour photography walk."
            ),
            short_description='My "good" over trending. Falling for subtle beauty',
            recommended_types=("art_gallery", "museum", "park", "natural_feature", "tourist_attraction"),
            keywords=("aesthetic", "beauty", "visual", "artistic", "sensory"),
        ),
        TravelTypeInfo(
            code="SDHP",
            name="The Soul Search Passenger",
            emoji="🌌",
            description=(
                "Travel is a self-conference where scenery provides the answers. "
                "Reflects deeply through vistas and night skies, finds insights in "
                "observation decks and sea breezes, and enjoys solo wandering followed by "
                "journaling. Ideal day: Morning rooftop solitude, contemplative museum "
                "visit, night view over the city."
            ),
            short_description="Introspection deepens at viewpoints and beaches",
            recommended_types=("park", "natural_feature", "tourist_attraction", "museum", "art_gallery"),
            keywords=("introspective", "reflective", "meaningful", "contemplative", "deep"),
        ),
        TravelTypeInfo(
            code="SDHF",
            name="The Soft Daydreamer",
            emoji="📖",
            description=(
                "Half reality, half the movie in your head. Collects narratives from "
                "bookshops and quaint cafes, loves cinematic rain scenes and whispered "
                "conversations, and moves through days like a gentle film sequence. "
                "Ideal day: Rainy cafe journaling, storytelling exhibits, twilight "
                "bookstore wandering."
            ),
            short_description="Travels collecting stories in bookshops and cafes",
            recommended_types=("library", "cafe", "book_store", "art_gallery", "tourist_attraction"),
            keywords=("dreamy", "imaginative", "literary", "contemplative", "story"),
        ),
        TravelTypeInfo(
            code="SDLP",
            name="The System Architect",
            emoji="🛰",
            description=(
                "Wants to see the structure beneath the scenery. Breaks down cities into "
                "layers and flows, enjoys transport hubs, observatories, and knowledge "
                "centers, and balances analysis with contemplative pauses. Ideal day: "
                "Transit museum, guided infrastructure tour, sunset notes overlooking "
                "rail lines."
            ),
            short_description="Hobby: designing routes with minimal movement, maximum understanding",
            recommended_types=("museum", "library", "tourist_attraction", "point_of_interest", "art_gallery"),
            keywords=("systematic", "analytical", "structured", "intellectual", "deep"),
        ),
        TravelTypeInfo(
            code="SDLF",
            name="The Rabbit-Hole Nomad",
            emoji="🧩",
            description=(
                "Researcher who falls down rabbit holes from a single sign. Follows "
                "curiosity into niche worlds, loves discount bookstores, archives, and "
                "secret societies, and can spend hours decoding one mysterious clue. "
                "Ideal day: Archive pass, specialty museum, midnight research cafe "
                "session."
            ),
            short_description="Few photos but tabs multiply. Detours are justice",
            recommended_types=("museum", "art_gallery", "establishment", "point_of_interest", "tourist_attraction"),
            keywords=("research", "deep-dive", "curious", "exploratory", "detailed"),
        ),
    )
}


def is_valid_travel_type_code(code: str | None) -> bool:
    return bool(code) and code in TRAVEL_TYPES


def get_travel_type_info(code: str) -> TravelTypeInfo:
    """Return catalogue info for ``code``. Raises ``KeyError`` for unknown codes."""
    return TRAVEL_TYPES[code]
