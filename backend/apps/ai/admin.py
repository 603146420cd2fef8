"""Admin configuration for the AI app."""
from django.contrib import admin

from .models import SavedGenome, TrainingRun


@admin.register(SavedGenome)
class SavedGenomeAdmin(admin.ModelAdmin):
    """Admin for SavedGenome."""

    list_display = [
        'name', 'architecture_tag', 'generation', 'fitness',
        'is_champion', 'created_at'
    ]
    list_filter = ['architecture_tag', 'is_champion', 'created_at']
    search_fields = ['name', 'genome_id']
    readonly_fields = ['id', 'network', 'created_at', 'updated_at']
    ordering = ['-created_at']
    actions = ['make_champion']

    @admin.action(description='Make the selected genome the champion')
    def make_champion(self, request, queryset):
        if queryset.count() != 1:
            self.message_user(request, 'Select exactly one genome.', level='error')
            return
        queryset.first().make_champion()


@admin.register(TrainingRun)
class TrainingRunAdmin(admin.ModelAdmin):
    """Admin for TrainingRun."""

    list_display = [
        'id_short', 'status', 'generations_completed', 'generations_requested',
        'best_fitness', 'started_at'
    ]
    list_filter = ['status', 'started_at']
    readonly_fields = [
        'id', 'generations_completed', 'best_fitness', 'history',
        'error', 'started_at', 'completed_at'
    ]
    ordering = ['-started_at']

    def id_short(self, obj):
        """Display shortened UUID."""
        return str(obj.id)[:8]
    id_short.short_description = 'ID'
