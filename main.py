# main.py
import sys
import json
import os
from shopsim.scenarios import SCENARIO_DEFINITIONS, SCENARIO_DIR, ShopEnv, RunRecorder, generate_scenarios
from shopsim.actions import parse_action
from shopsim.queries import compute_game_result
from colorama import Fore, Style, init

init(autoreset=True)


def opening_plan(products=('milktea', 'fruittea'), decoration='simple'):
    """The same modest student-area tea shop for every scripted agent."""
    plan = [
        {'type': 'select_brand', 'brand_id': 'independent'},
        {'type': 'select_location', 'location_id': 'school'},
        {'type': 'select_address', 'address_id': 'school_canteen'},
        {'type': 'select_decoration', 'decoration_id': decoration},
    ]
    plan += [{'type': 'toggle_product', 'product_id': p} for p in products]
    plan += [
        {'type': 'add_staff', 'staff_type_id': 'fulltime', 'assigned_task': 'chef'},
        {'type': 'add_staff', 'staff_type_id': 'parttime', 'assigned_task': 'waiter'},
        {'type': 'open_store', 'season': 'spring'},
    ]
    return plan


def answer_event(obs):
    """Always takes the first option on offer."""
    if obs['pending_event'] and obs['pending_options']:
        return [{'type': 'respond_to_event', 'event_id': obs['pending_event']['event_id'],
                 'option_id': obs['pending_options'][0]}]
    return []


def passive_agent(obs):
    """
    Agent 1: Passive
    Opens the shop and lets it run. Answers events, nothing else.
    """
    return answer_event(obs)


def steady_agent(obs):
    """
    Agent 2: Steady
    - Runs social media from week one.
    - Joins a delivery platform as soon as it is allowed.
    - Gives a day off to anyone thinking of quitting.
    """
    actions = answer_event(obs)
    if 'social_media' not in obs['marketing']:
        actions.append({'type': 'start_marketing', 'activity_id': 'social_media'})
    if not obs['platforms']:
        actions.append({'type': 'join_platform', 'platform_id': 'meituan'})
    elif obs['week'] > 1:
        actions.append({'type': 'set_discount_tier', 'platform_id': obs['platforms'][0], 'tier_id': 'small'})
    for s in obs['staff']:
        if s['wants_to_quit']:
            actions.append({'type': 'staff_morale_action', 'action': 'day_off', 'staff_id': s['id']})
    return actions


def greedy_agent(obs):
    """
    Agent 3: Greedy
    - Creeps prices up every four weeks.
    - Never spends on marketing.
    - Keeps the owner counting traffic for free.
    """
    actions = answer_event(obs)
    if obs['week'] % 4 == 0:
        for pid, price in obs['prices'].items():
            actions.append({'type': 'set_product_price', 'product_id': pid, 'price': price + 1.0})
    actions.append({'type': 'set_boss_action', 'action': 'count_traffic'})
    return actions


def _print_log(log):
    if "CRITICAL" in log:
        print(f"{Fore.RED}{log}{Style.RESET_ALL}")
    elif "EVENT" in log:
        print(f"{Fore.YELLOW}{log}{Style.RESET_ALL}")
    else:
        print(log)


def run_simulation(scenario_id="S-01", agent_func=passive_agent, verbose=False):
    if verbose:
        print(f"{Fore.CYAN}Initializing Shop Sim Scenario: {scenario_id}{Style.RESET_ALL}")

    env = ShopEnv(os.path.join(SCENARIO_DIR, f"{scenario_id}.json"))
    recorder = RunRecorder(env.scenario['id'])

    for action in opening_plan():
        # a setup event has to be answered before the doors open
        for answer in answer_event(env.observation()):
            recorder.record_action(answer['type'], env.step(answer).changed)
        result = env.step(action)
        recorder.record_action(action['type'], result.changed)
    if env.state.game_phase != 'operating':
        raise RuntimeError(f"{scenario_id}: the opening plan did not open the store")

    while not env.done:
        obs = env.observation()
        if verbose:
            print(f"\n{Fore.YELLOW}--- WEEK {obs['week'] + 1} ---{Style.RESET_ALL}")
            print(f"Cash: {obs['cash_display']} | Exposure: {obs['exposure']} | Reputation: {obs['reputation']}")

        for action in agent_func(obs):
            action = parse_action(action)
            result = env.step(action)
            recorder.record_action(action.type, result.changed)

        env.step({'type': 'next_week'})
        recorder.record_week(env.state)

        if verbose and env.state.weekly_summary:
            for log in env.state.weekly_summary.logs:
                _print_log(log)

    outcome = compute_game_result(env.state)
    report = recorder.generate_report(env.state)

    if verbose:
        print(f"\n{Fore.GREEN}Simulation Complete.{Style.RESET_ALL}")
        print(f"Outcome: {outcome.reason} after {outcome.weeks_played} weeks")
        print(f"ROI: {outcome.roi:.1%}")
        print("\n=== RUN REPORT ===")
        print(f"Strategy: {report['strategy']}")
        print(f"Final Cash: {report['final_cash']:,.0f}")
        print(f"Best / Worst Week: {report['best_week']:,.0f} / {report['worst_week']:,.0f}")
        print(f"Cognition Level: {report['cognition_level']}")
        print("==================")

    return outcome, report


def result_cell(outcome, width=22):
    """One padded, coloured cell of the baseline table. Padding goes on before the colour codes."""
    color = Fore.GREEN if outcome.is_win else (Fore.RED if outcome.reason == 'bankrupt' else Fore.WHITE)
    text = f"{outcome.reason} {outcome.total_profit:,.0f}".ljust(width)
    return f"{color}{text}{Style.RESET_ALL}"


def run_baseline():
    print(f"{Fore.MAGENTA}=== STARTING COMPREHENSIVE BASELINE RUN ==={Style.RESET_ALL}")
    generate_scenarios()

    if not os.path.exists("results"):
        os.makedirs("results")

    scenarios = [s['id'] for s in SCENARIO_DEFINITIONS]

    agents = {
        "Passive": passive_agent,
        "Steady": steady_agent,
        "Greedy": greedy_agent,
    }

    print(f"{'Scenario':<10} | {'Passive':<22} | {'Steady':<22} | {'Greedy':<22} |")
    print("-" * 84)

    agent_results = {name: {} for name in agents}

    for s_id in scenarios:
        print(f"{s_id:<10} | ", end="", flush=True)
        for name, func in agents.items():
            outcome, report = run_simulation(s_id, agent_func=func, verbose=False)
            print(f"{result_cell(outcome)} | ", end="", flush=True)
            agent_results[name][s_id] = report
        print()

    for name, data in agent_results.items():
        with open(f"results/{name}.json", "w") as f:
            json.dump(data, f, indent=2)
    print(f"\n{Fore.CYAN}Results saved to results/ directory.{Style.RESET_ALL}")


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "--single":
        generate_scenarios()
        run_simulation(sys.argv[2] if len(sys.argv) > 2 else "S-01", verbose=True)
    else:
        run_baseline()
