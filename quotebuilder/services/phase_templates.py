"""Built-in mission phase templates per discipline."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from decimal import Decimal

from quotebuilder.models.entities import LineItem, LineType, PricingMode, generate_line_id


class ProjectType(str, enum.Enum):
    ARCHITECTURE = "architecture"
    INTERIOR = "interior"
    SCENOGRAPHY = "scenography"


@dataclass(frozen=True, slots=True)
class PhaseTemplate:
    code: str
    name: str
    description: str
    default_percentage: Decimal
    deliverables: tuple[str, ...]


def _phase(code: str, name: str, description: str, percentage: int, *deliverables: str) -> PhaseTemplate:
    return PhaseTemplate(code, name, description, Decimal(percentage), deliverables)


ARCHITECTURE_PHASES: tuple[PhaseTemplate, ...] = (
    _phase("ESQ", "Esquisse", "Études préliminaires et esquisse du projet", 10,
           "Plans d'esquisse", "Volumétrie 3D", "Estimation budgétaire préliminaire", "Note d'intention"),
    _phase("APS", "Avant-Projet Sommaire", "Définition des principales caractéristiques du projet", 9,
           "Plans APS (1/200)", "Coupes et façades", "Notice descriptive", "Estimation détaillée"),
    _phase("APD", "Avant-Projet Définitif", "Conception détaillée du projet", 15,
           "Plans APD (1/100)", "Coupes et façades détaillées", "Perspectives", "CCTP sommaire",
           "Estimation définitive"),
    _phase("PC", "Permis de Construire", "Constitution et dépôt du dossier de permis de construire", 6,
           "Dossier PC complet", "Plans réglementaires", "Notice PC", "Insertion paysagère"),
    _phase("PRO", "Projet", "Études de projet détaillées", 18,
           "Plans PRO (1/50)", "Détails techniques", "CCTP détaillé", "Carnets de détails"),
    _phase("DCE", "Dossier de Consultation", "Préparation des documents de consultation des entreprises", 7,
           "DCE complet", "Quantitatif", "Planning prévisionnel", "RC et CCAP"),
    _phase("ACT", "Assistance Marchés", "Analyse des offres et assistance à la passation des marchés", 5,
           "Analyse des offres", "Rapport d'analyse", "Mise au point des marchés"),
    _phase("VISA", "Visa", "Examen et visa des études d'exécution", 5,
           "Visa des plans EXE", "Validation des échantillons", "Notes de calcul"),
    _phase("DET", "Direction des Travaux", "Direction et coordination des travaux", 20,
           "Comptes-rendus de chantier", "OPR", "Suivi financier", "Gestion des avenants"),
    _phase("AOR", "Réception", "Assistance aux opérations de réception", 5,
           "PV de réception", "Levée des réserves", "DOE", "DIUO"),
)

INTERIOR_PHASES: tuple[PhaseTemplate, ...] = (
    _phase("BRIEF", "Brief & Programme", "Analyse des besoins et définition du programme", 5,
           "Analyse de l'existant", "Programme fonctionnel", "Moodboard", "Budget prévisionnel"),
    _phase("ESQ", "Esquisse", "Premières propositions d'aménagement", 15,
           "Plans d'aménagement", "Planche d'ambiance", "Croquis perspectives", "Estimation budgétaire"),
    _phase("APS", "Avant-Projet Sommaire", "Développement du concept retenu", 15,
           "Plans APS (1/50)", "Élévations murales", "Palette matériaux", "Budget affiné"),
    _phase("APD", "Avant-Projet Définitif", "Définition complète du projet", 20,
           "Plans APD (1/20)", "Coupes techniques", "Perspectives 3D", "Carnet de finitions"),
    _phase("PRO", "Projet d'Exécution", "Plans d'exécution détaillés", 20,
           "Plans techniques détaillés", "Détails menuiserie", "Plans électriques", "Descriptif quantitatif"),
    _phase("CONSULT", "Consultation", "Consultation et sélection des entreprises", 5,
           "Dossier de consultation", "Analyse des devis", "Tableaux comparatifs", "Planning travaux"),
    _phase("CHANTIER", "Suivi de Chantier", "Direction et suivi des travaux", 15,
           "Comptes-rendus de chantier", "Suivi des commandes", "Coordination artisans", "Gestion du planning"),
    _phase("RECEP", "Réception", "Réception des travaux et livraison", 5,
           "PV de réception", "Levée des réserves", "Livraison client", "Dossier des ouvrages exécutés"),
)

SCENOGRAPHY_PHASES: tuple[PhaseTemplate, ...] = (
    _phase("CONCEPT", "Conception", "Développement du concept scénographique", 15,
           "Note d'intention", "Recherches iconographiques", "Parcours visiteur", "Scénario muséographique"),
    _phase("SCENARIO", "Scénario Détaillé", "Écriture du scénario et séquençage", 15,
           "Scénario détaillé", "Storyboard", "Contenus par séquence", "Brief multimédia"),
    _phase("DESIGN", "Design Scénographique", "Conception graphique et spatiale", 25,
           "Plans scénographiques", "Élévations", "Perspectives 3D", "Design graphique", "Palette matériaux"),
    _phase("TECH", "Études Techniques", "Plans techniques et dossiers de fabrication", 15,
           "Plans techniques", "Dossiers de fabrication", "Spécifications techniques", "CCTP"),
    _phase("PROD", "Suivi de Production", "Suivi de la fabrication des éléments", 10,
           "Validation prototypes", "Suivi fabrication", "Contrôle qualité", "Réception usine"),
    _phase("MONTAGE", "Montage", "Installation sur site", 15,
           "Coordination montage", "Suivi installation", "Réglages", "Tests multimédia"),
    _phase("INAUG", "Inauguration", "Finalisation et inauguration", 5,
           "Réception finale", "Formation exploitants", "Documentation technique", "Accompagnement inauguration"),
)

PHASES_BY_PROJECT_TYPE: dict[ProjectType, tuple[PhaseTemplate, ...]] = {
    ProjectType.ARCHITECTURE: ARCHITECTURE_PHASES,
    ProjectType.INTERIOR: INTERIOR_PHASES,
    ProjectType.SCENOGRAPHY: SCENOGRAPHY_PHASES,
}


def phase_templates_for(project_type: ProjectType) -> tuple[PhaseTemplate, ...]:
    return PHASES_BY_PROJECT_TYPE[project_type]


def phase_lines_from_template(project_type: ProjectType, *, start_sort_order: int = 0) -> list[LineItem]:
    """Percentage-priced, included phase lines; amounts are derived later."""

    return [
        LineItem(
            id=generate_line_id(),
            type=LineType.PHASE,
            designation=template.name,
            description=template.description,
            pricing_mode=PricingMode.PERCENTAGE,
            percentage_fee=template.default_percentage,
            deliverables=list(template.deliverables),
            sort_order=start_sort_order + index,
            phase_code=template.code,
        )
        for index, template in enumerate(phase_templates_for(project_type))
    ]
