"""
Painel de Sprints Azure DevOps

Este pacote agrega os dados de trabalho do Azure DevOps em visões de sprint, user stories
e capacity dos desenvolvedores, consumidas pelo painel web e pela linha de comando.
"""

__version__ = "1.0.0"
