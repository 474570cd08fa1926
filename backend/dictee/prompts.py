"""Default prompt templates. Administrators can override the three templates in global settings."""

WORD_LIST_PLACEHOLDER = "[liste des mots]"
LENGTH_PLACEHOLDER = "[longueur]"
COUNT_PLACEHOLDER = "[nombre]"

DEFAULT_EXTRACTION_PROMPT = """Tu es un expert en dictées françaises. Analyse cette image et extrais UNIQUEMENT les mots destinés à être dictés.

RÈGLES D'EXTRACTION :
1. IGNORE complètement : les titres, en-têtes de colonnes (ex: 'Noms', 'Verbes', 'Adjectifs'), numéros de liste, labels de catégories
2. GARDE uniquement : les mots et expressions qui seraient prononcés lors d'une dictée
3. Identifie les mots COMPLETS avec leurs déterminants (ex: 'l'antilope', 'une tapisserie', 'le siècle')
4. Garde les mots composés ensemble (ex: 'aujourd'hui', 'c'est-à-dire')
5. Préserve les accents et la ponctuation interne

FORMAT DE SORTIE :
- Retourne UNIQUEMENT les mots séparés par des virgules
- Pas de numérotation, pas de catégorisation
- Un mot par expression (ex: 'une tapisserie' est un mot complet)"""

DEFAULT_DICTATION_PROMPT = """Tu es un professeur de français pour enfants de 10 ans. Écris une dictée simple et adaptée à leur niveau.

CONSIGNES PÉDAGOGIQUES :
- Utilise un vocabulaire simple et accessible
- Construis des phrases courtes (10-15 mots maximum par phrase)
- Travaille les accords (singulier/pluriel, masculin/féminin)
- Inclus des verbes au présent et au passé composé
- Évite les structures grammaticales complexes

MOTS À UTILISER : [liste des mots]

LONGUEUR : environ [longueur] mots, utilisant [nombre] mots de la liste."""

# Always appended to the dictation prompt, customized or not
DICTATION_FORMAT_RULES = (
	"IMPORTANT : Utilise chacun des mots de la liste au moins une fois. "
	"Ta réponse doit contenir UNIQUEMENT le texte de la dictée, rien d'autre. "
	"Pas de titre, pas d'introduction, pas de commentaire, pas de formatage markdown "
	"(pas d'astérisques **), pas d'explication. Juste le texte brut de la dictée "
	"qui commence directement par la première phrase."
)

FALLBACK_DICTATION_PROMPT = (
	"Écris un court texte simple en français, d'environ {length} mots, "
	"qui utilise ces mots : {words}. "
	"Réponds uniquement avec le texte, en texte brut, sans titre."
)

DEFAULT_ANALYSIS_PROMPT = """Tu es un correcteur de dictée expert et bienveillant pour enfants de 10 ans. Compare le texte original avec le texte écrit par l'utilisateur et identifie TOUTES les erreurs.

Analyse les erreurs et retourne un JSON avec cette structure exacte:
{
  "errors": [
    {
      "type": "orthographe|grammaire|conjugaison|accord|ponctuation|autre",
      "original": "mot ou phrase correcte",
      "user": "ce que l'utilisateur a écrit",
      "explanation": "explication pédagogique simple et encourageante de l'erreur",
      "position": numéro_du_mot_dans_le_texte
    }
  ],
  "totalWords": nombre_total_de_mots,
  "correctWords": nombre_de_mots_corrects,
  "feedback": "commentaire général encourageant et constructif sur la performance, adapté à un enfant de 10 ans"
}"""

ANALYSIS_INPUT_TEMPLATE = """{instructions}

TEXTE ORIGINAL :
{original}

TEXTE ÉCRIT PAR L'UTILISATEUR :
{user}

La position est le numéro du mot (à partir de 1) dans le texte original, les mots étant séparés par des espaces.
Réponds UNIQUEMENT avec l'objet JSON, sans texte avant ni après."""

DEFAULT_FEEDBACK = "Continue tes efforts, tu progresses à chaque dictée !"


def build_dictation_prompt(template: str, words: list[str], target_length: int) -> str:
	word_list = ", ".join(words)
	if WORD_LIST_PLACEHOLDER in template:
		prompt = template.replace(WORD_LIST_PLACEHOLDER, word_list)
	else:
		prompt = f"{template}\n\nMOTS À UTILISER : {word_list}"
	prompt = prompt.replace(LENGTH_PLACEHOLDER, str(target_length)).replace(COUNT_PLACEHOLDER, str(len(words)))
	return f"{prompt}\n\n{DICTATION_FORMAT_RULES}"


def build_fallback_prompt(words: list[str], target_length: int) -> str:
	return FALLBACK_DICTATION_PROMPT.format(length=target_length, words=", ".join(words))


def build_analysis_prompt(template: str, original: str, user_text: str) -> str:
	return ANALYSIS_INPUT_TEMPLATE.format(instructions=template.strip(), original=original, user=user_text)
