# shopsim/event_catalog.py
"""
The interactive event catalogue. Each event fires at most once a game.
Descriptions are either plain text or a function of the current state.
"""
from typing import Dict, List

from .models import (
    BuffSpec, ChainSpec, DelayedSpec, EventEffects, EventOption, InteractiveGameEvent, StaffEffect,
)


def _kitchen_scandal(state) -> str:
    cook = next((s for s in state.staff if s.assigned_task == 'chef'), None)
    who = cook.name if cook else 'someone in the kitchen'
    return (f"A customer filmed {who} rinsing fruit in a plastic foot basin. "
            "The clip is all over the neighbourhood group chat.")


def _raise_request(state) -> str:
    if not state.staff:
        return 'Your best employee wants a raise.'
    best = max(state.staff, key=lambda s: s.skill_level)
    return f"{best.name} says the shop next door offered more money and asks for a raise."


def _overslept(state) -> str:
    if not state.staff:
        return 'Weeks of long days caught up with you. The shop opened two hours late.'
    tired = max(state.staff, key=lambda s: s.fatigue)
    return f"{tired.name} slept through the alarm. The shop opened at ten and the breakfast crowd went next door."


def _morale_gap(state) -> str:
    happiest = max(state.staff, key=lambda s: s.morale)
    gloomiest = min(state.staff, key=lambda s: s.morale)
    return (f"{gloomiest.name} complains that {happiest.name} gets all the easy shifts. "
            "The rest of the team is picking sides.")


INTERACTIVE_EVENTS: List[InteractiveGameEvent] = [
    InteractiveGameEvent(
        id='kitchen_hygiene_scandal',
        title='Kitchen hygiene scandal',
        description=_kitchen_scandal,
        min_week=3,
        probability=0.35,
        context_check='cleanliness_low',
        options=[
            EventOption(id='apologize_fix', text='Apologise and deep-clean everything',
                        response='Owning it early and paying to fix it keeps the damage short.',
                        effects=EventEffects(cash=-5000, reputation=-10, cleanliness=20, cognition_exp=15,
                                             buffs=[BuffSpec(type='reputation_weekly', value=3, weeks=3)])),
            EventOption(id='ignore', text='Say nothing and wait for it to blow over',
                        response='The internet does not forget. The clip keeps circulating.',
                        effects=EventEffects(reputation=-15, exposure=-10, cognition_exp=5,
                                             buffs=[BuffSpec(type='reputation_weekly', value=-5, weeks=4),
                                                    BuffSpec(type='exposure_weekly', value=-3, weeks=4)])),
            EventOption(id='blame_employee', text='Blame the cook and fire them',
                        response='Firing someone does not fix the kitchen, and the team saw it.',
                        effects=EventEffects(reputation=-20, morale=-15, cognition_exp=8,
                                             target_staff=StaffEffect(selector='by_task', task_filter='chef',
                                                                      remove=True),
                                             chain_event=ChainSpec(event_id='food_poisoning', delay_weeks=3,
                                                                   probability=0.3))),
        ],
    ),
    InteractiveGameEvent(
        id='food_poisoning',
        title='Food poisoning complaint',
        description='A family says their kid got sick after eating here. A local reporter is asking questions.',
        min_week=4,
        probability=0.0,
        chain_only=True,
        options=[
            EventOption(id='compensate', text='Pay the medical bills and apologise',
                        response='Expensive, but the story ends with you doing the right thing.',
                        effects=EventEffects(cash=-8000, reputation=-5, cognition_exp=12)),
            EventOption(id='deny', text='Deny it was the food',
                        response='Denial turns a complaint into a story.',
                        effects=EventEffects(reputation=-18, exposure=5, cognition_exp=6,
                                             buffs=[BuffSpec(type='demand_boost', value=-0.2, weeks=3)])),
        ],
    ),
    InteractiveGameEvent(
        id='staff_raise_request',
        title='A key employee wants a raise',
        description=_raise_request,
        min_week=4,
        probability=0.45,
        context_check='high_skill_staff',
        options=[
            EventOption(id='agree_raise', text='Agree to the raise',
                        response='A skilled hand is worth three beginners.',
                        effects=EventEffects(cognition_exp=12,
                                             target_staff=StaffEffect(selector='highest_skill', morale=20,
                                                                      salary_multiplier=1.1))),
            EventOption(id='promise_later', text='Promise a raise next quarter',
                        response='It buys time, but only if you keep the promise.',
                        effects=EventEffects(cognition_exp=8,
                                             target_staff=StaffEffect(selector='highest_skill', morale=-5),
                                             delayed=DelayedSpec(delay_weeks=4,
                                                                 effects=EventEffects(morale=-10),
                                                                 description='The promised raise never came.'))),
            EventOption(id='refuse', text='Refuse',
                        response='Do not be surprised if they walk.',
                        effects=EventEffects(cognition_exp=5,
                                             target_staff=StaffEffect(selector='highest_skill', morale=-30,
                                                                      wants_to_quit=True))),
        ],
    ),
    InteractiveGameEvent(
        id='supplier_price_hike',
        title='Supplier raises prices',
        description='Your main supplier says ingredient prices go up fifteen percent from next week.',
        min_week=5,
        probability=0.3,
        context_check='low_margin',
        options=[
            EventOption(id='accept', text='Accept the new price',
                        response='Costs rise, supply stays steady.',
                        effects=EventEffects(cognition_exp=8,
                                             buffs=[BuffSpec(type='cost_multiplier', value=0.15, weeks=6)])),
            EventOption(id='switch_supplier', text='Switch to a cheaper supplier',
                        response='Cheaper, but the first deliveries are patchy.',
                        effects=EventEffects(cash=-1000, cognition_exp=12,
                                             buffs=[BuffSpec(type='supply_reduction', value=0.2, weeks=2)])),
            EventOption(id='raise_prices', text='Pass it on to customers',
                        response='Some regulars notice and grumble.',
                        effects=EventEffects(reputation=-4, cognition_exp=10,
                                             buffs=[BuffSpec(type='revenue_multiplier', value=0.05, weeks=4),
                                                    BuffSpec(type='demand_boost', value=-0.08, weeks=4)])),
        ],
    ),
    InteractiveGameEvent(
        id='desperate_discount',
        title='Tempted by a fire sale',
        description='The losses keep piling up. A friend suggests half price on everything for a month to pull people in.',
        min_week=6,
        probability=0.35,
        context_check='deep_loss',
        options=[
            EventOption(id='fire_sale', text='Do the half-price month',
                        response='Crowds come for the price and leave when it ends.',
                        effects=EventEffects(exposure=10, reputation=-3, cognition_exp=10,
                                             buffs=[BuffSpec(type='demand_boost', value=0.4, weeks=4),
                                                    BuffSpec(type='revenue_multiplier', value=-0.45, weeks=4)])),
            EventOption(id='cut_costs', text='Cut costs instead',
                        response='Less exciting, but it stops the bleeding.',
                        effects=EventEffects(morale=-8, cognition_exp=15,
                                             buffs=[BuffSpec(type='cost_multiplier', value=-0.1, weeks=4)])),
            EventOption(id='hold', text='Keep going as you are',
                        response='Hope is not a plan.',
                        effects=EventEffects(cognition_exp=5)),
        ],
    ),
    InteractiveGameEvent(
        id='influencer_visit',
        title='A food blogger wants a free meal',
        description='A local food blogger with a big following offers a review in exchange for a free tasting.',
        min_week=2,
        probability=0.3,
        context_check='has_social_media_marketing',
        options=[
            EventOption(id='host', text='Host them properly',
                        response='A warm post goes up the next day.',
                        effects=EventEffects(cash=-800, exposure=12, cognition_exp=10,
                                             buffs=[BuffSpec(type='exposure_weekly', value=2, weeks=3)],
                                             chain_event=ChainSpec(event_id='blogger_follow_up', delay_weeks=2,
                                                                   probability=0.5))),
            EventOption(id='decline', text='Politely decline',
                        response='Nothing gained, nothing lost.',
                        effects=EventEffects(cognition_exp=4)),
        ],
    ),
    InteractiveGameEvent(
        id='blogger_follow_up',
        title='The blogger is back',
        description='The blogger wants to film a paid feature and asks for a sponsorship fee.',
        min_week=3,
        probability=0.0,
        chain_only=True,
        options=[
            EventOption(id='pay', text='Pay for the feature',
                        response='The video does well for a couple of weeks.',
                        effects=EventEffects(cash=-3000, exposure=8, cognition_exp=8,
                                             buffs=[BuffSpec(type='demand_boost', value=0.15, weeks=2)])),
            EventOption(id='refuse', text='Say no',
                        response='They post a lukewarm story instead.',
                        effects=EventEffects(reputation=-2, cognition_exp=6)),
        ],
    ),
    InteractiveGameEvent(
        id='overslept',
        title='Missed the morning rush',
        description=_overslept,
        min_week=4,
        probability=0.4,
        context_check='high_fatigue',
        notification_effects=EventEffects(reputation=-5, morale=-5, cognition_exp=10,
                                          buffs=[BuffSpec(type='revenue_multiplier', value=-0.15, weeks=1)]),
    ),
    InteractiveGameEvent(
        id='team_rift',
        title='Trouble in the team',
        description=_morale_gap,
        min_week=3,
        probability=0.35,
        context_check='staff_morale_gap',
        options=[
            EventOption(id='team_talk', text='Call a team meeting',
                        response='Airing it out clears the air.',
                        effects=EventEffects(morale=6, cognition_exp=12)),
            EventOption(id='side_with_star', text='Back the best performer',
                        response='The unhappy one feels ignored.',
                        effects=EventEffects(cognition_exp=6,
                                             target_staff=StaffEffect(selector='lowest_morale', morale=-15,
                                                                      wants_to_quit=True))),
            EventOption(id='ignore', text='Let them sort it out',
                        response='Resentment simmers.',
                        effects=EventEffects(morale=-5, cognition_exp=4,
                                             buffs=[BuffSpec(type='supply_reduction', value=0.05, weeks=2)])),
        ],
    ),
    InteractiveGameEvent(
        id='stock_runs_dry',
        title='Shelves keep running empty',
        description='Customers ask for things you do not have. Regulars start going elsewhere.',
        min_week=2,
        probability=0.4,
        context_check='supply_shortage',
        options=[
            EventOption(id='emergency_order', text='Rush an emergency order',
                        response='Expensive, but the shelves fill up.',
                        effects=EventEffects(cash=-2500, cognition_exp=10,
                                             buffs=[BuffSpec(type='cost_multiplier', value=0.1, weeks=1)])),
            EventOption(id='apologize', text='Put up an apology sign',
                        response='People appreciate honesty, up to a point.',
                        effects=EventEffects(reputation=-2, cognition_exp=8)),
        ],
    ),
    InteractiveGameEvent(
        id='glowing_review',
        title='A glowing newspaper review',
        description='A local paper calls you the best-kept secret in the area. Your phone will not stop ringing.',
        min_week=4,
        probability=0.25,
        context_check='high_reputation',
        options=[
            EventOption(id='ride_the_wave', text='Extend the hours to meet the rush',
                        response='Busy weeks, tired staff, full tills.',
                        effects=EventEffects(morale=-5, cognition_exp=10,
                                             buffs=[BuffSpec(type='demand_boost', value=0.25, weeks=3)])),
            EventOption(id='stay_steady', text='Keep things as they are',
                        response='Quality stays high and so does word of mouth.',
                        effects=EventEffects(reputation=3, cognition_exp=8,
                                             buffs=[BuffSpec(type='exposure_weekly', value=1.5, weeks=3)])),
        ],
    ),
    InteractiveGameEvent(
        id='headquarters_fee',
        title='Head office wants more',
        description='Head office announces a new brand upgrade fee. Pay it or lose their marketing support.',
        min_week=6,
        probability=0.4,
        context_check='is_quick_franchise',
        options=[
            EventOption(id='pay_fee', text='Pay the fee',
                        response='Weeks later there is still no sign of the promised campaign.',
                        effects=EventEffects(cash=-15000, cognition_exp=10,
                                             delayed=DelayedSpec(delay_weeks=3,
                                                                 effects=EventEffects(reputation=-5, cognition_exp=10),
                                                                 description='The promised brand upgrade never arrived.'))),
            EventOption(id='refuse', text='Refuse and read the contract',
                        response='Head office cuts your supply priority for a while.',
                        effects=EventEffects(cognition_exp=15,
                                             buffs=[BuffSpec(type='supply_reduction', value=0.15, weeks=3)])),
        ],
    ),
    InteractiveGameEvent(
        id='loyal_regular',
        title='A regular asks for a loyalty card',
        description='One of your regulars says they would come even more often with a stamp card.',
        min_week=6,
        probability=0.25,
        context_check='operating_6_weeks',
        options=[
            EventOption(id='make_cards', text='Print loyalty cards',
                        response='Regulars love a free tenth cup.',
                        effects=EventEffects(cash=-300, reputation=4, cognition_exp=8,
                                             buffs=[BuffSpec(type='revenue_multiplier', value=-0.03, weeks=6),
                                                    BuffSpec(type='demand_boost', value=0.06, weeks=6)])),
            EventOption(id='no_thanks', text='Not now',
                        response='They shrug and keep coming anyway.',
                        effects=EventEffects(cognition_exp=3)),
        ],
    ),

    # Setup: drawn when a brand or a location is picked
    InteractiveGameEvent(
        id='search_hijack',
        title='The franchise hotline',
        description=('You search for the brand\'s franchise number. The "official" line at the top of the '
                     'results says the brand is saturated and pitches you their own sub-brand instead.'),
        phase='setup',
        setup_step='select_brand',
        min_week=0,
        probability=0.6,
        context_check='browsing_franchise',
        options=[
            EventOption(id='see_through', text='Hang up and find the number on the brand\'s own site',
                        response='The top search results are adverts. Franchise mills buy them to catch '
                                 'people looking for the real brand.',
                        effects=EventEffects(cognition_exp=20)),
            EventOption(id='curious_listen', text='Hear them out about the sub-brand',
                        response='They have practised that pitch thousands of times. Now they have your number.',
                        effects=EventEffects(cognition_exp=10,
                                             chain_event=ChainSpec(event_id='harassment_calls', delay_weeks=1,
                                                                   probability=0.7))),
        ],
    ),
    InteractiveGameEvent(
        id='harassment_calls',
        title='Your phone will not stop ringing',
        description=('Ever since that search, a different "brand consultant" calls every day. '
                     'Some have added you on chat apps too.'),
        phase='setup',
        setup_step='select_brand',
        min_week=0,
        probability=0.0,
        chain_only=True,
        notification_effects=EventEffects(cognition_exp=8),
    ),
    InteractiveGameEvent(
        id='showroom_trap',
        title='A tour of head office',
        description=('The brand shows you a grand head office and a packed flagship store. Looking closer, '
                     'the "customers" in the flagship all seem to be staff.'),
        phase='setup',
        setup_step='select_brand',
        min_week=0,
        probability=0.7,
        context_check='is_quick_franchise',
        options=[
            EventOption(id='investigate', text='Visit ordinary franchisees and ask how they really do',
                        response='Anyone can dress up a showroom. What matters is a franchisee six months in.',
                        effects=EventEffects(cognition_exp=25)),
            EventOption(id='trust_brand', text='An office this big must be legitimate',
                        response='Renting a floor and staging a flagship is cheap next to the fees they collect.',
                        effects=EventEffects(cash=-3000, cognition_exp=5,
                                             buffs=[BuffSpec(type='reputation_weekly', value=-1, weeks=4)])),
        ],
    ),
    InteractiveGameEvent(
        id='location_teacher_scam',
        title='A location expert calls',
        description=('A self-styled location expert says a prime shop is up for transfer, but wants 20,000 '
                     'as an "information fee" first. He even sends a photo of a business licence.'),
        phase='setup',
        setup_step='select_location',
        min_week=0,
        probability=0.4,
        options=[
            EventOption(id='refuse_scam', text='Refuse and scout the street yourself',
                        response='There is no shortcut in picking a site. Stand on the corner and count people.',
                        effects=EventEffects(cognition_exp=20)),
            EventOption(id='pay_info_fee', text='Pay, just in case it is real',
                        response='That prime shop is most likely one nobody else would take.',
                        effects=EventEffects(cash=-20000, cognition_exp=10,
                                             chain_event=ChainSpec(event_id='expert_vanished', delay_weeks=1,
                                                                   probability=0.8))),
        ],
    ),
    InteractiveGameEvent(
        id='expert_vanished',
        title='The expert has vanished',
        description='His number is disconnected and he has blocked you everywhere. The 20,000 is gone.',
        phase='setup',
        setup_step='select_location',
        min_week=0,
        probability=0.0,
        chain_only=True,
        notification_effects=EventEffects(cognition_exp=15),
    ),
]

EVENTS_BY_ID: Dict[str, InteractiveGameEvent] = {e.id: e for e in INTERACTIVE_EVENTS}
