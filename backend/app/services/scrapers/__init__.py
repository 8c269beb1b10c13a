from app.services.scrapers.base import BaseScraper, RawResult
from app.services.scrapers.tavily import TavilyScraper
from app.services.scrapers.brightdata import BrightDataScraper

__all__ = ["BaseScraper", "RawResult", "TavilyScraper", "BrightDataScraper"]
