"""imgseek — find a small image inside a larger one, plus face and shape detection."""

from .image import Image, InvalidInput, load_image
from .integral_image import IntegralImage, build_integral_image
from .candidates import Candidate, CandidateList, CandidateSearcher, search_candidates
from .refiner import MatchResult, NOT_FOUND, Refiner
from .matcher import MatchParams, TemplateMatcher, match

__all__ = ["Image", "InvalidInput", "load_image", "IntegralImage", "build_integral_image",
           "Candidate", "CandidateList", "CandidateSearcher", "search_candidates",
           "MatchResult", "NOT_FOUND", "Refiner", "MatchParams", "TemplateMatcher", "match"]
