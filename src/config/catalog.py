"""Built-in fallback catalog for when no text-generation provider answers.

# ─── PURPOSE ───────────────────────────────────────────────────────────
#
# The fallback scorer (src/services/fallback_scorer.py) ranks these
# entries against the user's favourite genres and authors.  The list is
# curated for a teen (13–18) audience, spans the genres readers most often
# shelve, and has several titles per popular author so author matching
# has something to find.  Pure data: no I/O, built once at import time.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from src.models.book import CatalogBook

FALLBACK_CATALOG: tuple[CatalogBook, ...] = (
    # -- Fantasy --
    CatalogBook(
        title="The Hobbit",
        author="J.R.R. Tolkien",
        genre="Fantasy",
        reason="A classic quest full of riddles, dragons and unlikely courage.",
    ),
    CatalogBook(
        title="A Wizard of Earthsea",
        author="Ursula K. Le Guin",
        genre="Fantasy",
        reason="A thoughtful coming-of-age story about power and responsibility.",
    ),
    CatalogBook(
        title="Percy Jackson and the Lightning Thief",
        author="Rick Riordan",
        genre="Fantasy",
        reason="Greek mythology meets modern-day adventure with plenty of humour.",
    ),
    CatalogBook(
        title="The Red Pyramid",
        author="Rick Riordan",
        genre="Fantasy",
        reason="Egyptian gods, sibling banter and a race against time.",
    ),
    CatalogBook(
        title="Six of Crows",
        author="Leigh Bardugo",
        genre="Fantasy",
        reason="A heist crew of misfits with sharp dialogue and real stakes.",
    ),
    CatalogBook(
        title="Howl's Moving Castle",
        author="Diana Wynne Jones",
        genre="Fantasy",
        reason="Whimsical, witty and full of surprising magic.",
    ),
    CatalogBook(
        title="Eragon",
        author="Christopher Paolini",
        genre="Fantasy",
        reason="A farm boy, a dragon egg and an epic journey.",
    ),
    # -- Science Fiction / Dystopian --
    CatalogBook(
        title="Ender's Game",
        author="Orson Scott Card",
        genre="Science Fiction",
        reason="Strategy, isolation and the cost of winning.",
    ),
    CatalogBook(
        title="A Wrinkle in Time",
        author="Madeleine L'Engle",
        genre="Science Fiction",
        reason="A journey across space and time powered by family love.",
    ),
    CatalogBook(
        title="The Hunger Games",
        author="Suzanne Collins",
        genre="Dystopian",
        reason="A gripping survival story with a fierce heroine.",
    ),
    CatalogBook(
        title="Catching Fire",
        author="Suzanne Collins",
        genre="Dystopian",
        reason="The arena returns with higher stakes and sharper politics.",
    ),
    CatalogBook(
        title="The Giver",
        author="Lois Lowry",
        genre="Dystopian",
        reason="A quiet, unsettling look at a society without choice.",
    ),
    CatalogBook(
        title="Divergent",
        author="Veronica Roth",
        genre="Dystopian",
        reason="Identity and loyalty in a city split into factions.",
    ),
    CatalogBook(
        title="The Maze Runner",
        author="James Dashner",
        genre="Science Fiction",
        reason="Fast-paced mystery and survival inside a deadly maze.",
    ),
    # -- Mystery / Thriller --
    CatalogBook(
        title="One of Us Is Lying",
        author="Karen M. McManus",
        genre="Mystery",
        reason="Five students, one detention and a death nobody can explain.",
    ),
    CatalogBook(
        title="A Good Girl's Guide to Murder",
        author="Holly Jackson",
        genre="Mystery",
        reason="A school project turns into a real cold-case investigation.",
    ),
    CatalogBook(
        title="The Westing Game",
        author="Ellen Raskin",
        genre="Mystery",
        reason="A puzzle-box inheritance game with a clever twist.",
    ),
    CatalogBook(
        title="We Were Liars",
        author="E. Lockhart",
        genre="Mystery",
        reason="A haunting summer story with an unforgettable reveal.",
    ),
    # -- Contemporary / Romance --
    CatalogBook(
        title="Wonder",
        author="R.J. Palacio",
        genre="Contemporary",
        reason="Kindness, friendship and finding your place at a new school.",
    ),
    CatalogBook(
        title="The Fault in Our Stars",
        author="John Green",
        genre="Romance",
        reason="Funny and heartbreaking in equal measure.",
    ),
    CatalogBook(
        title="Looking for Alaska",
        author="John Green",
        genre="Contemporary",
        reason="Boarding-school friendships and big questions about life.",
    ),
    CatalogBook(
        title="Eleanor & Park",
        author="Rainbow Rowell",
        genre="Romance",
        reason="Two outsiders connect over comics and mixtapes.",
    ),
    CatalogBook(
        title="The Hate U Give",
        author="Angie Thomas",
        genre="Contemporary",
        reason="A powerful story about finding your voice.",
    ),
    # -- Historical Fiction --
    CatalogBook(
        title="The Book Thief",
        author="Markus Zusak",
        genre="Historical Fiction",
        reason="Words, courage and family in wartime Germany.",
    ),
    CatalogBook(
        title="Number the Stars",
        author="Lois Lowry",
        genre="Historical Fiction",
        reason="A brave friendship during the Nazi occupation of Denmark.",
    ),
    CatalogBook(
        title="Between Shades of Gray",
        author="Ruta Sepetys",
        genre="Historical Fiction",
        reason="Hope and art in the face of unimaginable hardship.",
    ),
    # -- Adventure / Horror / Graphic / Non-fiction --
    CatalogBook(
        title="Hatchet",
        author="Gary Paulsen",
        genre="Adventure",
        reason="Survival in the wilderness with only a hatchet and grit.",
    ),
    CatalogBook(
        title="Coraline",
        author="Neil Gaiman",
        genre="Horror",
        reason="Creepy, clever and impossible to put down.",
    ),
    CatalogBook(
        title="The Graveyard Book",
        author="Neil Gaiman",
        genre="Fantasy",
        reason="A boy raised by ghosts learns what it means to be alive.",
    ),
    CatalogBook(
        title="Nimona",
        author="ND Stevenson",
        genre="Graphic Novel",
        reason="A shapeshifter, a villain and a story that flips expectations.",
    ),
    CatalogBook(
        title="I Am Malala",
        author="Malala Yousafzai",
        genre="Non-Fiction",
        reason="An inspiring true story about education and bravery.",
    ),
    CatalogBook(
        title="Hidden Figures Young Readers' Edition",
        author="Margot Lee Shetterly",
        genre="Non-Fiction",
    ),
)
