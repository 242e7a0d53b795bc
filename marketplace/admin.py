from django.contrib import admin

from infrastructure.container import container

from .models import Endorsement, Favorite, Listing, ProvenanceEvent, Review, Transaction


class ProvenanceEventInline(admin.TabularInline):
    model = ProvenanceEvent
    extra = 0
    fields = ('event_type', 'event_date', 'description', 'location', 'verified_by', 'created_at')
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


class EndorsementInline(admin.TabularInline):
    model = Endorsement
    extra = 0
    fields = ('expert_name', 'expert_title', 'authenticity_confirmed', 'created_at')
    readonly_fields = ('created_at',)


@admin.register(Listing)
class ListingAdmin(admin.ModelAdmin):
    list_display = ('title', 'artist_name', 'seller', 'price', 'currency', 'status',
                   'verification_status', 'favorite_count', 'average_rating', 'created_at')
    list_filter = ('status', 'verification_status', 'medium', 'style', 'created_at')
    search_fields = ('title', 'artist_name', 'description', 'seller__username', 'seller__email')
    # status moves only through ListingService / TransactionService
    readonly_fields = ('id', 'status', 'view_count', 'favorite_count', 'average_rating',
                      'total_reviews', 'created_at', 'updated_at')

    inlines = [ProvenanceEventInline, EndorsementInline]

    fieldsets = (
        ('Artwork', {
            'fields': ('id', 'title', 'description', 'artist_name', 'artist_bio', 'medium',
                       'style', 'dimensions', 'year_created', 'primary_image_url')
        }),
        ('Commercial', {
            'fields': ('seller', 'price', 'currency', 'status')
        }),
        ('Verification', {
            'fields': ('verification_status', 'ai_confidence_score')
        }),
        ('Metrics', {
            'fields': ('view_count', 'favorite_count', 'average_rating', 'total_reviews'),
            'classes': ('collapse',)
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        })
    )

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('seller')

    actions = ['recompute_ratings', 'recount_favorites']

    def recompute_ratings(self, request, queryset):
        service = container.reputation_service()
        failed = [str(listing.pk) for listing in queryset if not service.recompute_listing(listing.pk).ok]
        self.message_user(request, f"Ratings recomputed for {queryset.count() - len(failed)} listings.")
    recompute_ratings.short_description = "Recompute rating aggregates"

    def recount_favorites(self, request, queryset):
        service = container.favorite_service()
        for listing in queryset:
            service.recount(listing.pk)
        self.message_user(request, f"Favorite counts rebuilt for {queryset.count()} listings.")
    recount_favorites.short_description = "Rebuild favorite counts"


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ('id', 'listing', 'buyer', 'seller', 'amount', 'platform_fee', 'status',
                   'escrow_status', 'delivery_status', 'created_at')
    list_filter = ('status', 'escrow_status', 'delivery_status', 'created_at')
    search_fields = ('id', 'listing__title', 'buyer__email', 'seller__email', 'payment_reference')
    readonly_fields = [field.name for field in Transaction._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ('listing', 'seller', 'reviewer', 'rating', 'title', 'is_verified_purchase', 'created_at')
    list_filter = ('rating', 'is_verified_purchase', 'created_at')
    search_fields = ('listing__title', 'reviewer__username', 'title', 'content')
    readonly_fields = ('is_verified_purchase', 'created_at', 'updated_at')


@admin.register(Favorite)
class FavoriteAdmin(admin.ModelAdmin):
    list_display = ('user', 'listing', 'created_at')
    list_filter = ('created_at',)
    search_fields = ('user__username', 'listing__title')
    readonly_fields = ('created_at',)


@admin.register(Endorsement)
class EndorsementAdmin(admin.ModelAdmin):
    list_display = ('listing', 'expert_name', 'expert_title', 'authenticity_confirmed', 'created_at')
    list_filter = ('authenticity_confirmed', 'created_at')
    search_fields = ('listing__title', 'expert_name')
    readonly_fields = ('created_at',)
