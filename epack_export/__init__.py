"""ePack Export — Upper Deck e-Pack collection and checklist CSV exporter."""
