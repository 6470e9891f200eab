from __future__ import annotations

import logging
from itertools import product
from types import MappingProxyType
from typing import Dict, List, Mapping, Tuple

from bazi import transform
from bazi.archetypes import ARCHETYPE_ORDER, GENDER_ORDER, STYLE_ORDER, Archetype, Gender, Style
from bazi.chart import PillarSlot
from bazi.classifier import StrengthCategory
from bazi.elements import ELEMENT_ORDER, Element
from bazi.errors import MissingTemplate

logger = logging.getLogger(__name__)

Coordinate = Tuple[Element, StrengthCategory, Archetype, Style]

W, F, E, M, A = Element.WOOD, Element.FIRE, Element.EARTH, Element.METAL, Element.WATER
WEAK, BAL, STRONG = StrengthCategory.WEAK, StrengthCategory.BALANCED, StrengthCategory.STRONG
FC, EN, AD, RI, TR = (
    Archetype.FORECAST, Archetype.ENERGY, Archetype.ADVICE, Archetype.RITUAL, Archetype.TRANSFORMATION,
)
PO, PR = Style.POETIC, Style.PRACTICAL

# =========================================================
# Male-voiced templates
# =========================================================
_MALE: Dict[Coordinate, str] = {
    # ---------------- Wood ----------------
    (W, WEAK, FC, PO): "A young oak in thin soil: this year brings rain after a long dry spell, and every new root you send down will hold.",
    (W, WEAK, FC, PR): "Expect support to arrive through teachers and older colleagues. Growth is slow in the first half of the year and speeds up after summer.",
    (W, WEAK, EN, PO): "Your sap runs quietly beneath the bark, waiting for the warmth that lets the cedar stretch.",
    (W, WEAK, EN, PR): "Your energy is limited but steady. You recover best through learning, reading and time outdoors.",
    (W, WEAK, AD, PO): "Let the oak learn from the grass: bend first, then expand your reach one ring at a time.",
    (W, WEAK, AD, PR): "Focus on one project at a time. Expand your skills before you expand your obligations.",
    (W, WEAK, RI, PO): "At dawn, water a living plant and name one thing you want to grow this year.",
    (W, WEAK, RI, PR): "Every morning spend ten minutes stretching near a window; keep a green plant on your desk.",
    (W, WEAK, TR, PO): "The sapling becomes a cedar not by force but by patience; your power is in the roots you gather now.",
    (W, WEAK, TR, PR): "This is a year of building foundations. The power you gain from study will pay off over the next three years.",

    (W, BAL, FC, PO): "The grove stands in full leaf: the year opens paths in many directions, and the oak chooses which branch to lift toward the sun.",
    (W, BAL, FC, PR): "A balanced year with good chances for new projects in spring and autumn. Partnerships started now tend to last.",
    (W, BAL, EN, PO): "Your energy moves like wind through young leaves, lively and unhurried.",
    (W, BAL, EN, PR): "Your energy is even. You handle routine and change equally well this year.",
    (W, BAL, AD, PO): "Assert your place in the forest without shading the saplings around you.",
    (W, BAL, AD, PR): "Focus on plans that need both vision and follow-through. Assert your ideas in meetings, then delegate the details.",
    (W, BAL, RI, PO): "At dawn, plant a seed in a clay pot and tend it through the first month of the year.",
    (W, BAL, RI, PR): "Start each week with a fifteen-minute planning session in the morning; review it on Friday.",
    (W, BAL, TR, PO): "The oak that keeps both its roots and its crown gains the power to shelter others.",
    (W, BAL, TR, PR): "Your growth comes from balancing ambition with care for people around you; that balance is your power this year.",

    (W, STRONG, FC, PO): "The forest is dense and tall; the year asks the oak to make room for light rather than to grow higher.",
    (W, STRONG, FC, PR): "Plenty of drive and opportunity this year, but also the risk of spreading yourself too thin. Prune early.",
    (W, STRONG, EN, PO): "Your energy surges like spring sap, pressing against every branch at once.",
    (W, STRONG, EN, PR): "You have more energy than usual and can handle a heavy workload, as long as you direct it.",
    (W, STRONG, AD, PO): "Take control of the pruning shears: cut the branches that block the sun.",
    (W, STRONG, AD, PR): "Focus on finishing, not starting. Take control of your calendar and drop two commitments you no longer believe in.",
    (W, STRONG, RI, PO): "At dawn, trim a dry branch from a plant or tree and burn a small candle for what you let go.",
    (W, STRONG, RI, PR): "Each morning write down one task you will not do today; keep the list for a month.",
    (W, STRONG, TR, PO): "The cedar with full force in its trunk learns to bear fruit instead of only leaves; that is its true power.",
    (W, STRONG, TR, PR): "Turn raw drive into results: channel your power into two or three long-term goals and let the rest wait.",

    # ---------------- Fire ----------------
    (F, WEAK, FC, PO): "A small torch in a cold hall: the year brings kindling, and by autumn the flame will be seen from afar.",
    (F, WEAK, FC, PR): "The first months may feel slow. Recognition grows in the second half of the year through people who value your warmth.",
    (F, WEAK, EN, PO): "Your flame flickers but does not go out; it only needs dry wood and shelter from the wind.",
    (F, WEAK, EN, PR): "Your energy dips easily. Protect your sleep and avoid long evenings that drain you.",
    (F, WEAK, AD, PO): "Feed the torch before you raise it: gather wood, then expand the circle of light.",
    (F, WEAK, AD, PR): "Focus on environments that energize you. Expand your network slowly, starting with people you already trust.",
    (F, WEAK, RI, PO): "At dawn, light a candle facing east and warm your hands over it before speaking your wish.",
    (F, WEAK, RI, PR): "Each morning get ten minutes of daylight before looking at your phone.",
    (F, WEAK, TR, PO): "The spark becomes a bonfire by accepting fuel from others; in receiving lies your power.",
    (F, WEAK, TR, PR): "Learning to ask for help is your main growth point this year, and it gives you real power.",

    (F, BAL, FC, PO): "The hearth burns bright and even; the year brings guests, celebrations and a torch passed into your hands.",
    (F, BAL, FC, PR): "A visible year: good for presentations, launches and public roles. Summer is the strongest season.",
    (F, BAL, EN, PO): "Your energy glows like embers at the heart of the fire, warm without scorching.",
    (F, BAL, EN, PR): "Your energy is stable and social. You recharge through meaningful conversation.",
    (F, BAL, AD, PO): "Assert your light, but keep the bonfire inside the ring of stones.",
    (F, BAL, AD, PR): "Focus on visibility with substance. Assert your results openly and back them with numbers.",
    (F, BAL, RI, PO): "At dawn, light two candles, one for yourself and one for someone who warmed you last year.",
    (F, BAL, RI, PR): "Schedule one morning a month for a meeting that inspires you rather than one that informs you.",
    (F, BAL, TR, PO): "The steady flame becomes a lantern for others; sharing light multiplies your power.",
    (F, BAL, TR, PR): "Mentoring or teaching turns your enthusiasm into lasting influence and quiet power.",

    (F, STRONG, FC, PO): "The bonfire roars in the summer night; the year brings heat, and the wise torch-bearer keeps water close.",
    (F, STRONG, FC, PR): "A fast, intense year with many opportunities and a real risk of burnout. Plan your rest as carefully as your work.",
    (F, STRONG, EN, PO): "Your energy blazes like noon in July, bright enough to blind as well as to guide.",
    (F, STRONG, EN, PR): "You have a lot of energy and little patience. Watch irritability when plans stall.",
    (F, STRONG, AD, PO): "Take control of the flame: bank the fire at night so it is still alive at dawn.",
    (F, STRONG, AD, PR): "Focus on pacing. Take control of your evenings and keep at least one screen-free night a week.",
    (F, STRONG, RI, PO): "At dawn, pour a bowl of cool water beside a lit candle and sit between them for a while.",
    (F, STRONG, RI, PR): "Each morning drink a glass of water and take three slow breaths before the first call.",
    (F, STRONG, TR, PO): "The wildfire that learns its banks becomes a forge; at full force, restraint is the source of power.",
    (F, STRONG, TR, PR): "Your growth this year is in finishing what you ignite. Consistency becomes your power.",

    # ---------------- Earth ----------------
    (E, WEAK, FC, PO): "A field after the flood: the year dries the ground slowly, and by harvest the mountain path is firm again.",
    (E, WEAK, FC, PR): "Stability returns step by step. Avoid big financial risks in spring; conditions improve in late summer.",
    (E, WEAK, EN, PO): "Your soil is loose and thirsty, waiting for sun to bind it.",
    (E, WEAK, EN, PR): "Your energy is easily scattered by worry. Regular meals and routine ground you.",
    (E, WEAK, AD, PO): "Lay one stone at a time; the fortress grows from the corner, not the tower.",
    (E, WEAK, AD, PR): "Focus on small, reliable routines. Expand your savings before you expand your plans.",
    (E, WEAK, RI, PO): "At dawn, hold a smooth stone in your palm and place it by your door as a keeper of the threshold.",
    (E, WEAK, RI, PR): "Eat breakfast at the same time every morning for a month and note how your focus changes.",
    (E, WEAK, TR, PO): "The sand becomes a mountain grain by grain; your power is the patience that gathers it.",
    (E, WEAK, TR, PR): "This year you learn to trust your own pace. Reliability becomes your power.",

    (E, BAL, FC, PO): "The valley is green and the granary full; the year brings steady harvests and the company of good neighbors.",
    (E, BAL, FC, PR): "A stable year for property, family matters and long-term contracts. Autumn is especially favorable.",
    (E, BAL, EN, PO): "Your energy rests like a warm hillside, calm and able to hold much.",
    (E, BAL, EN, PR): "Your energy is grounded and dependable. Others come to you for stability.",
    (E, BAL, AD, PO): "Assert the boundaries of your field so the harvest stays your own.",
    (E, BAL, AD, PR): "Focus on commitments you can keep. Assert clear limits on favors and extra work.",
    (E, BAL, RI, PO): "At dawn, sprinkle a pinch of salt at the four corners of your home and sweep the threshold.",
    (E, BAL, RI, PR): "Clear one drawer or shelf every Sunday morning throughout the first month of the year.",
    (E, BAL, TR, PO): "The mountain that lets rivers pass through it gains the power to feed the plain.",
    (E, BAL, TR, PR): "Your growth is in flexibility: staying dependable while allowing change is your power.",

    (E, STRONG, FC, PO): "The mountain stands unmoved while weather swirls around it; the year asks it to open a pass for travelers.",
    (E, STRONG, FC, PR): "Solid ground under your feet, but also stubbornness. The year rewards those who update their plans.",
    (E, STRONG, EN, PO): "Your energy is heavy as bedrock, immovable and slow to warm.",
    (E, STRONG, EN, PR): "You have stamina but may feel sluggish. Movement and new input refresh you.",
    (E, STRONG, AD, PO): "Take control of the quarry: cut stone from the mountain and build a road with it.",
    (E, STRONG, AD, PR): "Focus on change you have postponed. Take control of one habit that keeps you stuck and replace it.",
    (E, STRONG, RI, PO): "At dawn, walk a new path around your neighborhood and leave a small stone at its end.",
    (E, STRONG, RI, PR): "Every morning walk for twenty minutes on a route you have not taken before.",
    (E, STRONG, TR, PO): "The fortress with open gates becomes a city; at full force, openness is its power.",
    (E, STRONG, TR, PR): "Letting go of rigid plans turns your stability into real power and influence.",

    # ---------------- Metal ----------------
    (M, WEAK, FC, PO): "A blade still in the forge: the year brings heat and hammer, and by winter the edge will shine.",
    (M, WEAK, FC, PR): "Pressure early in the year sharpens your skills. Results show in the last quarter.",
    (M, WEAK, EN, PO): "Your energy is thin silver wire, fine and easily bent.",
    (M, WEAK, EN, PR): "Your energy is sensitive to stress and noise. Order in your space restores you.",
    (M, WEAK, AD, PO): "Polish the sword before you draw it; one clean edge is worth ten dull ones.",
    (M, WEAK, AD, PR): "Focus on quality over quantity. Expand your expertise in one narrow field.",
    (M, WEAK, RI, PO): "At dawn, ring a small bell three times and listen until the sound fades completely.",
    (M, WEAK, RI, PR): "Every morning spend five minutes on deep breathing by an open window.",
    (M, WEAK, TR, PO): "Raw ore becomes a blade through fire it did not choose; your power is in the tempering.",
    (M, WEAK, TR, PR): "Challenges this year refine you. Precision and clarity become your power.",

    (M, BAL, FC, PO): "The sword rests in a fine sheath; the year brings clear choices and the right moment to draw it.",
    (M, BAL, FC, PR): "A year of decisions and clean agreements. Good for contracts, audits and restructuring.",
    (M, BAL, EN, PO): "Your energy rings like a struck bell, clear and resonant.",
    (M, BAL, EN, PR): "Your energy is focused and precise. You work best with clear rules.",
    (M, BAL, AD, PO): "Assert the edge, keep the scabbard; both the blade and its sheath are yours.",
    (M, BAL, AD, PR): "Focus on decisions you have delayed. Assert your standards without turning them into criticism.",
    (M, BAL, RI, PO): "At dawn, polish a coin or a piece of silver and carry it with you for the first month of the year.",
    (M, BAL, RI, PR): "Set aside one morning a week to sort papers, finances and open tasks.",
    (M, BAL, TR, PO): "The sword that knows when to stay sheathed gains the power of a judge.",
    (M, BAL, TR, PR): "Fairness and clear judgment become your power and your reputation this year.",

    (M, STRONG, FC, PO): "Steel meets steel: the year brings sharp contests, and the blade that bends survives the one that shatters.",
    (M, STRONG, FC, PR): "A demanding year with strong competitors. Flexibility protects you better than hardness.",
    (M, STRONG, EN, PO): "Your energy is a drawn sword, bright and impatient for the strike.",
    (M, STRONG, EN, PR): "You have strong willpower and may come across as harsh. Softness in tone helps you.",
    (M, STRONG, AD, PO): "Conquer the urge to cut; let the blade rest so the hand can learn to open.",
    (M, STRONG, AD, PR): "Focus on listening. Conquer the habit of correcting others and compete only with your past self.",
    (M, STRONG, RI, PO): "At dawn, place a metal object in a bowl of water and leave it there until evening.",
    (M, STRONG, RI, PR): "Each morning write one sentence of appreciation for someone before any critique.",
    (M, STRONG, TR, PO): "The sword at full force melts into a bell: what once cut now calls people together, and that is its power.",
    (M, STRONG, TR, PR): "Turning criticism into guidance is your growth this year and the real source of your power.",

    # ---------------- Water ----------------
    (A, WEAK, FC, PO): "A spring under the ice: the year brings thaw, and by summer the stream finds its way to the ocean.",
    (A, WEAK, FC, PR): "Quiet first months, then steady progress. Insight and useful contacts come after midyear.",
    (A, WEAK, EN, PO): "Your energy is a shallow pool, clear and still, easily stirred.",
    (A, WEAK, EN, PR): "Your energy is low and sensitive to cold and fatigue. Rest is productive for you.",
    (A, WEAK, AD, PO): "Gather the streams before you seek the ocean; depth comes before width.",
    (A, WEAK, AD, PR): "Focus on rest and reflection. Expand your knowledge before you expand your commitments.",
    (A, WEAK, RI, PO): "At dawn, pour fresh water into a glass bowl and place it where moonlight falls at night.",
    (A, WEAK, RI, PR): "Every morning drink warm water and keep your feet warm through the winter months.",
    (A, WEAK, TR, PO): "A trickle becomes a river by joining others; in flowing together lies your power.",
    (A, WEAK, TR, PR): "Accepting support and sharing ideas multiplies your power this year.",

    (A, BAL, FC, PO): "The river runs full between its banks; the year carries you toward a wide ocean of possibilities.",
    (A, BAL, FC, PR): "A flowing year for travel, study and communication. Winter brings the best insights.",
    (A, BAL, EN, PO): "Your energy moves like a calm river, deep and unhurried.",
    (A, BAL, EN, PR): "Your energy is adaptable. You handle uncertainty better than most people around you.",
    (A, BAL, AD, PO): "Seize the current when it comes, then rest in the still water of the bend.",
    (A, BAL, AD, PR): "Focus on timing. Seize the openings that appear in conversation and follow up within a day.",
    (A, BAL, RI, PO): "At dawn, rinse your face with cool water and speak your intention for the day aloud.",
    (A, BAL, RI, PR): "Start each morning with five minutes of journaling before any other input.",
    (A, BAL, TR, PO): "The river that knows its source gains the power of the sea.",
    (A, BAL, TR, PR): "Trusting your intuition and acting on it turns adaptability into power.",

    (A, STRONG, FC, PO): "A waterfall in flood: the year brings momentum, and the wise boatman builds banks before the rains.",
    (A, STRONG, FC, PR): "Plenty of ideas and movement, with a risk of scattered focus. Structure turns this year into results.",
    (A, STRONG, EN, PO): "Your energy is the open ocean, vast, restless and hard to contain.",
    (A, STRONG, EN, PR): "You have abundant mental energy and may struggle to switch off at night.",
    (A, STRONG, AD, PO): "Dominate the flood with stone and timber; give the waterfall a channel.",
    (A, STRONG, AD, PR): "Focus on structure. Dominate your inbox instead of letting it set your agenda.",
    (A, STRONG, RI, PO): "At dawn, stand barefoot on the ground and feel the weight of the earth beneath the waters.",
    (A, STRONG, RI, PR): "Each morning make a three-item list and finish it before opening new tasks.",
    (A, STRONG, TR, PO): "The ocean at full force, held by its shores, becomes a harbor; that is its power.",
    (A, STRONG, TR, PR): "Turning ideas into finished work is your growth this year and the core of your power.",
}


def _derive_female(male: Mapping[Coordinate, str]) -> Dict[Coordinate, str]:
    return {
        (element, strength, archetype, style): transform.apply(text, archetype, element, strength, style)
        for (element, strength, archetype, style), text in male.items()
    }


# female set derived once at import, read-only afterwards
TEMPLATES: Mapping[Tuple[Element, StrengthCategory, Archetype, Style, Gender], str] = MappingProxyType({
    **{key + (Gender.MALE,): text for key, text in _MALE.items()},
    **{key + (Gender.FEMALE,): text for key, text in _derive_female(_MALE).items()},
})


def all_coordinates():
    return product(ELEMENT_ORDER, tuple(StrengthCategory), ARCHETYPE_ORDER, STYLE_ORDER, GENDER_ORDER)


def missing_coordinates() -> List[tuple]:
    return [c for c in all_coordinates() if not TEMPLATES.get(c)]


def lookup(element, strength_category, archetype, style, gender) -> str:
    try:
        key = (
            Element(element),
            StrengthCategory(strength_category),
            Archetype(archetype),
            Style(style),
            Gender(gender),
        )
    except ValueError:
        raise MissingTemplate((element, strength_category, archetype, style, gender)) from None
    text = TEMPLATES.get(key)
    if not text:
        raise MissingTemplate(key)
    return text


# =========================================================
# Composer tables
# =========================================================
AMULETS = MappingProxyType({
    W: ("bamboo sprig", "carved sandalwood", "green"),
    F: ("phoenix feather", "red lacquer", "crimson"),
    E: ("ox figure", "glazed ceramic", "ochre"),
    M: ("square-holed coin", "bronze", "silver"),
    A: ("golden carp", "black obsidian", "deep blue"),
})

COLORS = MappingProxyType({
    W: "green and teal",
    F: "red, orange and purple",
    E: "yellow, ochre and terracotta",
    M: "white, silver and gold",
    A: "black, navy and deep blue",
})

HEALTH = MappingProxyType({
    W: "liver, tendons and eyes",
    F: "heart, circulation and sleep",
    E: "stomach, spleen and digestion",
    M: "lungs, skin and breathing",
    A: "kidneys, bones and lower back",
})

HEALTH_BY_STRENGTH = MappingProxyType({
    WEAK: "Build reserves gently: warm food, regular sleep and no crash diets.",
    BAL: "Keep the rhythm you already have and add one new habit each season.",
    STRONG: "Release excess tension through movement; expand your training slowly and avoid overdoing it.",
})

PILLAR_FOCUS = MappingProxyType({
    PillarSlot.YEAR: "Seize chances that come through the wider world: community, travel and public projects.",
    PillarSlot.MONTH: "Take the lead in your career; the work pillar is where the year moves fastest for you.",
    PillarSlot.DAY: "Assert what you need in close relationships; the self and partnership pillar is active.",
    PillarSlot.HOUR: "Take control of your private plans and creative projects; the hidden pillar is awake.",
})

if missing_coordinates():
    logger.error("content matrix has %d gaps", len(missing_coordinates()))
